"""Run the workflow API with uvicorn: ``python -m factory_workflow``."""

from __future__ import annotations

import uvicorn

from .config import WorkflowSettings
from .web.app import create_app


def main() -> None:
    settings = WorkflowSettings.from_env()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
