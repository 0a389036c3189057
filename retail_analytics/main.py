"""
FastAPI Production Application

Main entry point for the Retail Analytics API.
"""

from retail_analytics.config import get_settings
from retail_analytics.serving.api.main import create_app

app = create_app()


def run() -> None:
    """Console entry point"""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
