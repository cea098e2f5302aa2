from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str = "127.0.0.1"
    port: int = 3100
    debug: bool = False
    cors_origins: list[str] = []
    identity_header: str = "X-Authenticated-Uid"  # Set by the authenticating gateway in front of this service
    admin_uids: list[str] = []
    batch_size: int = 500  # Maximum writes per atomic batch commit
    query_timeout: float = 30.0  # Seconds allowed for one fanned-out enumeration step
    use_transactions: bool = False  # Wrap each batch in a MongoDB transaction (requires a replica set)

    model_config = {
        "env_file": [".env"],
        "env_prefix": "REFKEEPER_",
        "extra": "ignore",
    }
