"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    INPUT_ERROR = 3
    NOT_FOUND = 4


class Scopes(Enum):
    """Dependency scopes understood by the resolver.

    Args:
        Enum (string): Maven dependency scope names.
    """

    COMPILE = "compile"
    RUNTIME = "runtime"
    PROVIDED = "provided"
    TEST = "test"
    SYSTEM = "system"
    IMPORT = "import"


class CacheRegions(Enum):
    """Cache regions with their TTL in seconds.

    Args:
        Enum (int): TTL per region.
    """

    RESOLVED_TREE = 24 * 3600
    VERSION_INFO = 6 * 3600
    SEARCH = 10 * 60
    VULNERABILITIES = 3600


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_REPOSITORY_ID = "central"
    DEFAULT_REPOSITORY_URL = "https://repo.maven.apache.org/maven2/"
    REGISTRY_URL_MAVEN_SEARCH = "https://search.maven.org/solrsearch/select"
    OSV_QUERY_URL = "https://api.osv.dev/v1/query"
    OSV_VULN_PAGE = "https://osv.dev/vulnerability/"
    OSV_ECOSYSTEM_MAVEN = "Maven"
    USER_AGENT = "gavlens/1.0"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 15  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3

    MAX_MANIFEST_BYTES = 512 * 1024
    MAX_CUSTOM_REPOSITORIES = 5
    ALLOWED_REPOSITORY_SCHEMES = ("https",)

    DEFAULT_SCOPE = Scopes.COMPILE.value
    DEFAULT_EXTENSION = "jar"
    LATEST_VERSION = "LATEST"
    MANAGED_GROUP_PREFIX = "org.springframework.boot"
    IMPLICIT_JAVA_VERSION = "17"
    MAX_PARENT_DEPTH = 5
    RESOLVE_MAX_WORKERS = 1
    VERSION_LIST_ROWS = 200
    SEARCH_DEFAULT_PAGE_SIZE = 20
    SEARCH_MAX_PAGE_SIZE = 50
    SNIPPET_FORMATS = ("maven", "gradle", "gradle_kotlin", "sbt", "ivy", "leiningen", "buildr")
    INTELLIGENCE_DEFAULT_VERSIONS = 10

    CACHE_MAX_ENTRIES = 10000

    MODULE_PLACEHOLDER_MESSAGE = (
        "module detected, full analysis requires that module's own manifest"
    )

    CONFIG_ENV = "GAVLENS_CONFIG"
    LOG_LEVEL_ENV = "GAVLENS_LOG_LEVEL"
    CONFIG_SEARCH_PATHS = (
        os.path.join("~", ".config", "gavlens", "gavlens.yml"),
        "gavlens.yml",
    )


# YAML keys (lower-case) mapped onto Constants attribute names.
_CONFIG_KEYS: Dict[str, str] = {
    "default_repository_url": "DEFAULT_REPOSITORY_URL",
    "search_url": "REGISTRY_URL_MAVEN_SEARCH",
    "osv_url": "OSV_QUERY_URL",
    "request_timeout": "REQUEST_TIMEOUT",
    "http_retry_max": "HTTP_RETRY_MAX",
    "managed_group_prefix": "MANAGED_GROUP_PREFIX",
    "max_parent_depth": "MAX_PARENT_DEPTH",
    "resolve_max_workers": "RESOLVE_MAX_WORKERS",
    "version_list_rows": "VERSION_LIST_ROWS",
    "search_max_page_size": "SEARCH_MAX_PAGE_SIZE",
    "intelligence_default_versions": "INTELLIGENCE_DEFAULT_VERSIONS",
}


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the first readable YAML config file.

    An explicit path wins over ``GAVLENS_CONFIG`` which wins over the default
    search locations. Missing files yield an empty dict.
    """
    candidates = []
    if path:
        candidates.append(path)
    elif os.environ.get(Constants.CONFIG_ENV):
        candidates.append(os.environ[Constants.CONFIG_ENV])
    else:
        candidates.extend(Constants.CONFIG_SEARCH_PATHS)

    import yaml  # pylint: disable=import-outside-toplevel

    for candidate in candidates:
        expanded = os.path.expanduser(candidate)
        if not os.path.isfile(expanded):
            continue
        with open(expanded, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: top-level value is not a mapping", expanded)
            return {}
        return data
    return {}


def apply_config(cfg: Dict[str, Any]) -> None:
    """Apply a loaded config mapping onto Constants, ignoring unknown keys."""
    section = cfg.get("gavlens", cfg) if isinstance(cfg, dict) else {}
    if not isinstance(section, dict):
        return
    for key, value in section.items():
        attr = _CONFIG_KEYS.get(str(key).lower())
        if attr is None or value is None:
            continue
        current = getattr(Constants, attr)
        if isinstance(current, int) and not isinstance(current, bool):
            value = int(value)
        setattr(Constants, attr, value)
