import uvicorn

from hiresight.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()

    # Run the application
    uvicorn.run(
        "hiresight.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )
