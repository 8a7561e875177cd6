import argparse
import logging
import uvicorn
from config import ApplicationConfig
from src.api.app import create_app

logger = logging.getLogger(__name__)

app = create_app(ApplicationConfig)


def main():
    parser = argparse.ArgumentParser(description="Cast payout service API")
    parser.add_argument("--host", default=ApplicationConfig.API_HOST)
    parser.add_argument("--port", type=int, default=ApplicationConfig.API_PORT)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    args = parser.parse_args()

    logger.info(f"Starting cast payout API on {args.host}:{args.port} (prefix {ApplicationConfig.API_PREFIX})")
    uvicorn.run(
        "api:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=str(ApplicationConfig.LOG_LEVEL).lower(),
    )


if __name__ == "__main__":
    main()
