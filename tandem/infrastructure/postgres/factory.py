from __future__ import annotations

from typing import Literal, overload

from ...core.enums import PoolRole, TlsMode
from ...logger import get_logger
from .config import PoolConfig
from .pool import AsyncConnectionPool, ReadablePool, WritablePool

logger = get_logger(__name__)

_POOL_CLASSES: dict[PoolRole, type[AsyncConnectionPool]] = {
    PoolRole.WRITABLE: WritablePool,
    PoolRole.READABLE: ReadablePool,
}


@overload
def build_pool(config: PoolConfig, role: Literal[PoolRole.WRITABLE]) -> WritablePool: ...
@overload
def build_pool(config: PoolConfig, role: Literal[PoolRole.READABLE]) -> ReadablePool: ...
@overload
def build_pool(config: PoolConfig, role: PoolRole) -> AsyncConnectionPool: ...
def build_pool(config: PoolConfig, role: PoolRole) -> AsyncConnectionPool:
    """Build an uninitialized pool handle for ``role``.

    Pure construction: no connection is opened until the pool is initialized
    and a connection is checked out.

    Parameters
    ----------
    config
        Validated pool configuration.
    role
        Which side of the registry the pool serves.

    Returns
    -------
    AsyncConnectionPool
        A `WritablePool` or `ReadablePool`.
    """
    if config.tls_mode is TlsMode.ENABLED_INSECURE:
        logger.warning(
            "TLS certificate verification DISABLED for pool: server certificates are not validated "
            "and connections are open to interception. Use only on trusted private networks.",
            role=str(role),
            endpoint=config.endpoint,
            tls_mode=str(config.tls_mode),
        )

    return _POOL_CLASSES[role](config)
