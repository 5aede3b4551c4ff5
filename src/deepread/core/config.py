"""
Configuration system for the DeepRead transcript service.
All tunables are centralized here and can be overridden via environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path('.env')
if env_path.exists():
    load_dotenv(dotenv_path=env_path)

# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def _parse_list_env(env_var: str, default: List[str]) -> List[str]:
    """Parse a comma-separated environment variable into a list."""
    value = os.getenv(env_var)
    if value:
        return [item.strip() for item in value.split(',') if item.strip()]
    return list(default)

# =============================================================================
# CORE APPLICATION SETTINGS
# =============================================================================

@dataclass
class AppConfig:
    """Core application configuration."""
    version: str = field(default_factory=lambda: os.getenv('APP_VERSION', '0.1.0'))
    debug: bool = field(default_factory=lambda: os.getenv('DEBUG', 'false').lower() == 'true')
    environment: str = field(default_factory=lambda: os.getenv('ENVIRONMENT', 'development'))

@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO').upper())
    format: str = field(default_factory=lambda: os.getenv('LOG_FORMAT', '%(asctime)s [%(name)s] %(levelname)s: %(message)s'))
    date_format: str = field(default_factory=lambda: os.getenv('LOG_DATE_FORMAT', '%Y-%m-%d %H:%M:%S'))

# =============================================================================
# NETWORK CONFIGURATION
# =============================================================================

@dataclass
class NetworkConfig:
    """Outbound HTTP timeouts and retry policy."""
    request_timeout: float = field(default_factory=lambda: float(os.getenv('HTTP_TIMEOUT', '15')))
    max_retries: int = field(default_factory=lambda: int(os.getenv('HTTP_MAX_RETRIES', '2')))
    retry_backoff: float = field(default_factory=lambda: float(os.getenv('HTTP_RETRY_BACKOFF', '1.0')))
    # Pause between paginated calls to stay under upstream throttling
    page_delay: float = field(default_factory=lambda: float(os.getenv('PAGE_DELAY', '0.15')))
    accept_language: str = field(default_factory=lambda: os.getenv('HTTP_ACCEPT_LANGUAGE', 'en-US,en;q=0.9'))

# =============================================================================
# FETCH CHAIN CONFIGURATION
# =============================================================================

@dataclass
class FetchConfig:
    """Strategy order, language defaults and pagination limits."""
    strategies: List[str] = field(default_factory=lambda: _parse_list_env('FETCH_STRATEGIES', [
        'direct', 'paginated', 'library', 'scrape', 'proxy'
    ]))
    default_languages: List[str] = field(default_factory=lambda: _parse_list_env('DEFAULT_LANGUAGES', [
        'en', 'en-US', 'en-GB'
    ]))
    max_pages: int = field(default_factory=lambda: int(os.getenv('PAGINATION_MAX_PAGES', '50')))
    min_page_segments: int = field(default_factory=lambda: int(os.getenv('PAGINATION_MIN_SEGMENTS', '10')))
    cursor_epsilon: float = field(default_factory=lambda: float(os.getenv('PAGINATION_EPSILON', '0.01')))

# =============================================================================
# RELAY CONFIGURATION
# =============================================================================

@dataclass
class RelayConfig:
    """Third-party caption relays, tried in ``order``."""
    order: List[str] = field(default_factory=lambda: _parse_list_env('RELAY_ORDER', [
        'supadata', 'subtitle_api', 'cors'
    ]))
    supadata_api_key: str = field(default_factory=lambda: os.getenv('SUPADATA_API_KEY', ''))
    supadata_api_url: str = field(default_factory=lambda: os.getenv('SUPADATA_API_URL', 'https://api.supadata.ai/v1/transcript'))
    supadata_timeout: float = field(default_factory=lambda: float(os.getenv('SUPADATA_TIMEOUT', os.getenv('HTTP_TIMEOUT', '15'))))
    subtitle_api_url: str = field(default_factory=lambda: os.getenv('SUBTITLE_API_URL', ''))
    subtitle_api_timeout: float = field(default_factory=lambda: float(os.getenv('SUBTITLE_API_TIMEOUT', os.getenv('HTTP_TIMEOUT', '15'))))
    # Templates with a ``{url}`` placeholder for the wrapped timedtext URL
    cors_relays: List[str] = field(default_factory=lambda: _parse_list_env('CAPTION_RELAY_URLS', []))

# =============================================================================
# SERVER CONFIGURATION
# =============================================================================

@dataclass
class ServerConfig:
    """HTTP surface configuration."""
    cors_origins: List[str] = field(default_factory=lambda: _parse_list_env('CORS_ALLOW_ORIGINS', []))
    host: str = field(default_factory=lambda: os.getenv('SERVER_HOST', '0.0.0.0'))
    port: int = field(default_factory=lambda: int(os.getenv('SERVER_PORT', '8000')))

# =============================================================================
# MAIN CONFIGURATION CLASS
# =============================================================================

@dataclass
class Config:
    """Main configuration class that aggregates all configuration sections."""
    app: AppConfig = field(default_factory=AppConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    relays: RelayConfig = field(default_factory=RelayConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

# =============================================================================
# GLOBAL CONFIGURATION INSTANCE
# =============================================================================

config = Config()

# =============================================================================
# CONFIGURATION VALIDATION
# =============================================================================

KNOWN_STRATEGIES = ('direct', 'paginated', 'library', 'scrape', 'proxy')
KNOWN_RELAYS = ('supadata', 'subtitle_api', 'cors')

def validate_config(cfg: Config = None) -> Tuple[bool, List[str]]:
    """
    Validate the configuration values.

    Returns:
        Tuple of (is_valid, problems)
    """
    cfg = cfg or config
    problems = []

    unknown = [name for name in cfg.fetch.strategies if name not in KNOWN_STRATEGIES]
    if unknown:
        problems.append(f"Unknown FETCH_STRATEGIES entries: {', '.join(unknown)}")
    if not cfg.fetch.strategies:
        problems.append("FETCH_STRATEGIES must name at least one strategy")

    unknown_relays = [name for name in cfg.relays.order if name not in KNOWN_RELAYS]
    if unknown_relays:
        problems.append(f"Unknown RELAY_ORDER entries: {', '.join(unknown_relays)}")

    bad_templates = [t for t in cfg.relays.cors_relays if '{url}' not in t]
    if bad_templates:
        problems.append(f"CAPTION_RELAY_URLS entries missing '{{url}}': {', '.join(bad_templates)}")

    if cfg.network.request_timeout <= 0:
        problems.append("HTTP_TIMEOUT must be positive")
    if cfg.network.max_retries < 0:
        problems.append("HTTP_MAX_RETRIES must not be negative")
    if cfg.fetch.max_pages < 1:
        problems.append("PAGINATION_MAX_PAGES must be at least 1")
    if not 0 < cfg.fetch.cursor_epsilon < 0.1:
        problems.append("PAGINATION_EPSILON must be between 0 and 0.1 seconds")

    return len(problems) == 0, problems

def setup_logging():
    """Configure logging for the application."""
    logging.basicConfig(
        level=getattr(logging, config.logging.level, logging.INFO),
        format=config.logging.format,
        datefmt=config.logging.date_format
    )

def create_env_template() -> str:
    """Create a template .env file with all available configuration options."""
    return """# DeepRead transcript service configuration

# Application
APP_VERSION=0.1.0
DEBUG=false
ENVIRONMENT=development
LOG_LEVEL=INFO

# Network
HTTP_TIMEOUT=15
HTTP_MAX_RETRIES=2
HTTP_RETRY_BACKOFF=1.0
PAGE_DELAY=0.15

# Fetch chain
FETCH_STRATEGIES=direct,paginated,library,scrape,proxy
DEFAULT_LANGUAGES=en,en-US,en-GB
PAGINATION_MAX_PAGES=50
PAGINATION_MIN_SEGMENTS=10
PAGINATION_EPSILON=0.01

# Relays
RELAY_ORDER=supadata,subtitle_api,cors
SUPADATA_API_KEY=
SUBTITLE_API_URL=
CAPTION_RELAY_URLS=

# Server
CORS_ALLOW_ORIGINS=
SERVER_HOST=0.0.0.0
SERVER_PORT=8000
"""

def print_config_summary():
    """Print a summary of the current configuration."""
    print("=== DeepRead Configuration ===")
    print(f"App Version: {config.app.version}")
    print(f"Environment: {config.app.environment}")
    print(f"Log Level: {config.logging.level}")
    print(f"Strategies: {', '.join(config.fetch.strategies)}")
    print(f"Default Languages: {', '.join(config.fetch.default_languages)}")
    print(f"HTTP Timeout: {config.network.request_timeout:g}s, retries: {config.network.max_retries}")
    print(f"Pagination: {config.fetch.max_pages} pages max, page delay {config.network.page_delay:g}s")
    print(f"Relay Order: {', '.join(config.relays.order)}")
    print("=" * 50)
