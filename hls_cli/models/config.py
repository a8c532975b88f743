"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator

DEFAULT_PROXY_TEMPLATE = "https://corsproxy.io/?{url}"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0"
)


class DownloadConfig(BaseModel):
    """A validated configuration model for the application."""

    # Network
    use_proxy: bool = False
    proxy_template: str = DEFAULT_PROXY_TEMPLATE
    user_agent: str = DEFAULT_USER_AGENT
    connect_timeout: float = 15.0
    read_timeout: float = 90.0

    # Download Settings
    batch_size: int = 5
    output_dir: str = "."

    # Conversion
    convert: bool = True
    keep_ts: bool = False
    ffmpeg_path: str = "ffmpeg"

    # Internal field not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        """Ensures a reasonable number of concurrent segment requests."""
        if v < 1 or v > 32:
            raise ValueError("Batch size must be between 1 and 32.")
        return v

    @field_validator("proxy_template")
    @classmethod
    def validate_proxy_template(cls, v: str) -> str:
        if "{url}" not in v:
            raise ValueError("Proxy template must contain the {url} placeholder.")
        if not v.startswith(("http://", "https://")):
            raise ValueError("Proxy template must be an http(s) URL.")
        return v

    @field_validator("connect_timeout", "read_timeout")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive.")
        return v

    @field_validator("ffmpeg_path")
    @classmethod
    def validate_ffmpeg_path(cls, v: str) -> str:
        if not v:
            raise ValueError("ffmpeg_path cannot be empty.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
