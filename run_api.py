"""Launch the FastAPI server."""
from telex_sentiment import config


def main():
    import uvicorn
    uvicorn.run(
        "telex_sentiment.api.main:app",
        host=config.HOST,
        port=config.PORT,
        reload=False,
        log_level=config.LOG_LEVEL,
    )


if __name__ == "__main__":
    main()
