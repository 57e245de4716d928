# --- Standard library imports ---
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence

# --- Project imports ---
from .config import Config
from .logger import get_logger
from .http_client import fetch_json
from .errors import MalformedBodyError


logger = get_logger("providers")

@dataclass(frozen=True)
class Identity:
    """The resolved public-network identity label (historically "ISP")."""
    isp: str

    def __str__(self) -> str:
        return self.isp


def extract_field(data: dict, keys: Sequence[str]) -> Optional[str]:
    """
    Return the first present, non-empty string value among `keys`.
    """
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


class Provider(ABC):
    """
    A single upstream identity source (HTTP JSON endpoint).

    Subclasses only differ in URL and in which response fields carry the
    identity. Retry/backoff lives in the HTTP call path, not here.
    """

    url: str
    field_keys: tuple[str, ...] = ("isp",)

    def __init__(
        self,
        retries: int = 1,
        max_bytes: int = Config.DEFAULT_MAX_RESPONSE_BYTES,
        timeout: float = Config.API_TIMEOUT,
    ):
        self.retries = retries
        self.max_bytes = max_bytes
        self.timeout = timeout

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    def candidate_keys(self) -> tuple[str, ...]:
        return self.field_keys

    def query(self) -> Identity:
        """
        Perform one (internally retried) GET and extract the identity.

        Raises:
            ProviderError: Transport/HTTP/size failures, or
                MalformedBodyError when no candidate field is present.
        """
        data = fetch_json(
            self.url,
            retries=self.retries,
            max_bytes=self.max_bytes,
            timeout=self.timeout,
        )

        keys = self.candidate_keys()
        isp = extract_field(data, keys)
        if isp is None:
            raise MalformedBodyError(
                f"no recognizable field (tried {', '.join(keys)})"
            )

        logger.debug(f"{self.name} → {isp!r}")
        return Identity(isp=isp)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.url!r})"


class IpApiProvider(Provider):
    """ip-api.com: flat JSON with an `isp` field."""

    DEFAULT_URL = "http://ip-api.com/json"
    field_keys = ("isp",)

    def __init__(self, url: str = DEFAULT_URL, **kwargs):
        super().__init__(**kwargs)
        self.url = url

    @property
    def name(self) -> str:
        return "ip-api"


class IfconfigCoProvider(Provider):
    """ifconfig.co: `asn_org` carries the operator (some mirrors add `isp`)."""

    DEFAULT_URL = "https://ifconfig.co/json"
    field_keys = ("isp", "asn_org")

    def __init__(self, url: str = DEFAULT_URL, **kwargs):
        super().__init__(**kwargs)
        self.url = url

    @property
    def name(self) -> str:
        return "ifconfig.co"


class GenericJsonProvider(Provider):
    """
    Arbitrary user-supplied JSON endpoint.

    Field lookup order: the configured preferred key (if any), then `isp`,
    `asn_org`, `org`.
    """

    field_keys = ("isp", "asn_org", "org")

    def __init__(self, url: str, preferred_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.url = url
        self.preferred_key = preferred_key or None

    @property
    def name(self) -> str:
        return self.url

    def candidate_keys(self) -> tuple[str, ...]:
        if not self.preferred_key:
            return self.field_keys
        rest = tuple(k for k in self.field_keys if k != self.preferred_key)
        return (self.preferred_key, *rest)
