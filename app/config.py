import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings(BaseModel):
    database_url: str = Field(
        default=os.getenv("DATABASE_URL", "sqlite:///./simple_crud.db")
    )
    db_pool_size: int = Field(default=int(os.getenv("DB_POOL_SIZE", "5")))
    db_max_overflow: int = Field(default=int(os.getenv("DB_MAX_OVERFLOW", "10")))
    db_pool_timeout: int = Field(default=int(os.getenv("DB_POOL_TIMEOUT", "30")))
    db_pool_recycle: int = Field(default=int(os.getenv("DB_POOL_RECYCLE", "1800")))
    # Create the list/item tables on startup instead of running migrations
    db_auto_create: bool = Field(default=_env_bool("DB_AUTO_CREATE", "true"))

    # Session cookie
    session_cookie_name: str = Field(default=os.getenv("SESSION_COOKIE_NAME", "crud_session"))
    session_ttl_seconds: int = Field(default=int(os.getenv("SESSION_TTL_SECONDS", "86400")))
    secure_cookies: bool = Field(default=_env_bool("SECURE_COOKIES", "true"))

    # CRUD widget defaults
    crud_items_per_page: int = Field(default=int(os.getenv("CRUD_ITEMS_PER_PAGE", "10")))
    crud_items_per_page_choices: tuple[int, ...] = Field(
        default=os.getenv("CRUD_ITEMS_PER_PAGE_CHOICES", "10,25,50,100"),
        validate_default=True,
    )
    crud_direct_links_count: int = Field(
        default=int(os.getenv("CRUD_DIRECT_LINKS_COUNT", "3"))
    )

    log_level: str = Field(default=os.getenv("LOG_LEVEL", "INFO"))

    @field_validator("crud_items_per_page_choices", mode="before")
    @classmethod
    def parse_choices(cls, v):
        if isinstance(v, str):
            return tuple(int(part) for part in v.split(",") if part.strip())
        return v

    @field_validator("crud_items_per_page", "crud_direct_links_count")
    @classmethod
    def positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("crud_items_per_page_choices")
    @classmethod
    def positive_choices(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if not v or any(choice < 1 for choice in v):
            raise ValueError("CRUD_ITEMS_PER_PAGE_CHOICES must list positive integers")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    class Config:
        frozen = True


settings = Settings()
