"""Application configuration.

AppConfig is a frozen dataclass, immutable after creation. Fields are
attributes rather than string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(port=3000, log_level="debug")
    """

    # Server
    host: str = "0.0.0.0"  # bind-all
    port: int = 8000
    debug: bool = False
    workers: int = 1

    # Logging, applied to the "perch" logger by App.listen()
    log_level: str = "info"

    # Decode request payloads before middleware runs (POST/PUT/PATCH/DELETE)
    parse_body: bool = True
