# --- Standard library imports ---
from typing import Sequence

# --- Project imports ---
from .logger import get_logger
from .errors import ChainExhaustedError, ProviderError
from .providers import (
    GenericJsonProvider,
    Identity,
    IfconfigCoProvider,
    IpApiProvider,
    Provider,
)


# Define the logger once for the entire module
logger = get_logger("resolver")

def resolve_identity(providers: Sequence[Provider]) -> Identity:
    """
    Return the identity from the first provider that succeeds.

    Providers are consulted strictly in order and nothing after the first
    success is queried (first success, not best match). Each failure is
    recorded as "<name>: <reason>".

    Raises:
        ChainExhaustedError: Every provider failed, or the chain is empty.
    """
    failures: list[str] = []

    for provider in providers:
        try:
            identity = provider.query()
        except ProviderError as e:
            failures.append(f"{provider.name}: {e}")
            logger.warning(f"Identity provider failed | {provider.name}: {e}")
            continue

        logger.debug(f"Identity resolved via {provider.name}")
        return identity

    raise ChainExhaustedError(failures)

def build_provider_chain(settings) -> list[Provider]:
    """
    Build the ordered provider chain from settings.

    Order:
        1. Custom provider URLs, as supplied
        2. The single custom JSON server (with its preferred key)
        3. ip-api.com       (unless disabled)
        4. ifconfig.co      (unless disabled)
    """
    http = {
        "retries": settings.http_retries,
        "max_bytes": settings.max_response_bytes,
    }

    chain: list[Provider] = [
        GenericJsonProvider(url, **http) for url in settings.provider_urls
    ]

    if settings.custom_json_server:
        chain.append(
            GenericJsonProvider(
                settings.custom_json_server,
                preferred_key=settings.custom_json_key,
                **http,
            )
        )

    if settings.enable_ip_api:
        chain.append(IpApiProvider(**http))

    if settings.enable_ifconfig_co:
        chain.append(IfconfigCoProvider(**http))

    logger.debug(f"Provider chain: {[p.name for p in chain]}")
    return chain
