from pydantic_settings import BaseSettings

class Settings(BaseSettings):

    PROJECT_NAME : str = "Order Dispatch Service"
    ENV : str = 'development'

    #DataBase
    DATABASE_URL : str = "sqlite:///./order_dispatch.db"

    # JWT (tokens are issued by the auth service, we only verify them)
    SECRET_KEY : str
    ALGORITHM : str = "HS256"

    # Celery
    CELERY_BROKER_URL : str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND : str = "redis://localhost:6379/0"

    # Tracking
    AVERAGE_SPEED_KMH : float = 30.0
    POLL_INTERVAL_SECONDS : float = 8.0
    IDLE_DELIVERY_MINUTES : int = 30

    DEBUG: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
