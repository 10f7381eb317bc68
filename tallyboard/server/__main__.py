"""
Upload Server Starter

    python -m tallyboard.server

Host and port come from UPLOAD_HOST / UPLOAD_PORT (default 127.0.0.1:3001).
"""

import uvicorn

from tallyboard.audit import AuditLogger, configure_logging, get_logger
from tallyboard.config import get_settings
from tallyboard.server.api_app import create_app


def main() -> None:
    settings = get_settings()
    configure_logging(settings.app.log_level, settings.app.json_logs)
    logger = get_logger("tallyboard.server")

    server = settings.upload_server
    app = create_app(audit_logger=AuditLogger())
    logger.info(
        "upload_server_starting",
        base_url=server.base_url,
        uploads_dir=str(app.state.image_store.uploads_dir),
    )
    uvicorn.run(app, host=server.host, port=server.port, log_level=settings.app.log_level.lower())


if __name__ == "__main__":
    main()
