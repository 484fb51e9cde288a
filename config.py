from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Loan Origination API"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./loan_origination.db"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Bounded retries when a generated reference/receipt number already exists
    number_generation_attempts: int = 5

    default_page_size: int = 20
    max_page_size: int = 100

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
