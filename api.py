import uvicorn
from config import ApplicationConfig
from src.api.app import create_app

app = create_app(ApplicationConfig)

if __name__ == "__main__":
    # Housekeeping runs inside the app's lifespan, one scheduler per worker
    uvicorn.run(
        "api:app",
        host=ApplicationConfig.API_HOST,
        port=ApplicationConfig.API_PORT,
        reload=ApplicationConfig.API_RELOAD,
        workers=None if ApplicationConfig.API_RELOAD else ApplicationConfig.API_WORKERS,
        log_level=ApplicationConfig.LOG_LEVEL.lower(),
    )
