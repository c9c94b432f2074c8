from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    MAX_SENSITIVITY_STEPS: int = 10
    DEFAULT_SIMULATION_ITERATIONS: int = 1000
    MAX_SIMULATION_ITERATIONS: int = 100_000
    PROGRESS_BATCH_SIZE: int = 50
    MAX_TASK_WORKERS: int = 2
    MAX_RETAINED_TASKS: int = 100
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
