from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    stake_pool_id: str | None = None
    api_endpoint: str | None = None
    api_token: str | None = None
    genesis_file: str | None = None
    vrf_skey_file: str | None = None
    cardano_node_socket_path: str | None = None  # forwarded to cardano-cli
    marker_path: str | None = None  # last_epoch.txt location, see config.default_marker_path
    cardano_cli: str = "cardano-cli"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
