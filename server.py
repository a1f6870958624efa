import uvicorn

from habitstats import settings
from habitstats.logging_setup import setup_logging
from habitstats.main import app


def main():
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
