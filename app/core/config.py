from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    MESSAGE_GROUP_WINDOW_MINUTES: int = 60

    class Config:
        env_file = ".env"


settings = Settings()
