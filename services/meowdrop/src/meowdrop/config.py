from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MEOWDROP_", env_file=None, extra="ignore")

    port: int = 8003
    data_dir: str = "/data"
    service_url: str = "http://localhost:8003"

    # одна "ячейка" localStorage со всей коллекцией записей
    storage_slot: str = "meowdrop_files"
    storage_quota_chars: int = 5 * 1024 * 1024
    strict_store: bool = False

    max_share_bytes: int = 3 * 1024 * 1024
    max_transfer_bytes: int = 10 * 1024 * 1024 * 1024

    transfer_tick_ms: int = 50
    transfer_start_delay_ms: int = 300

    log_level: str = "INFO"

    @property
    def db_url(self) -> str:
        # sqlite файл
        return f"sqlite:///{self.data_dir.rstrip('/')}/meowdrop.db"


settings = Settings()
