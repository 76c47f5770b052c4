"""Application configuration"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Boltzmann analysis limits (partition enumeration grows with the Bell numbers)
    boltzmann_max_io_count: int = 16  # inputs + outputs
    boltzmann_max_partitions: int = 250_000  # Bell(inputs) + Bell(outputs)
    boltzmann_max_combinations: int = 10_000  # valid mappings materialized per transaction

    # Transaction graph
    default_graph_depth: int = 2
    max_graph_depth: int = 10
    graph_max_nodes: int = 500  # Traversal stops adding nodes past this
    floyd_warshall_warn_nodes: int = 300  # O(n^3) beyond this gets slow

    # Mempool.space compatible REST endpoint (transaction source)
    mempool_url: str = "https://mempool.space/api"
    mempool_request_timeout: float = 15.0
    mempool_user_agent: str = "linkscope/0.1"

    # Redis (optional transaction cache)
    redis_enabled: bool = False
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str = ""

    # Cache TTL (seconds)
    cache_ttl_transaction: int = 2592000  # 30 days (transactions are immutable)

    # API
    api_title: str = "linkscope API"
    api_version: str = "0.1.0"
    max_batch_transactions: int = 500

    # CORS
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Logging
    log_level: str = "INFO"


# Global settings instance
settings = Settings()
