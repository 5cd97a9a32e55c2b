from dataclasses import dataclass

from libb import ConfigOptions, scriptname

__all__ = ['DatabaseOptions']

SUPPORTED_DRIVERS = ('mysql',)
REQUIRED_OPTIONS = ('hostname', 'username', 'database')


@dataclass
class DatabaseOptions(ConfigOptions):
    """MySQL connection settings.

    ``appname`` is sent to the server as the connection's program name and
    defaults to the running script. With ``use_pool`` the engine keeps up to
    ``pool_max_connections`` connections, recycles them after
    ``pool_max_idle_time`` seconds and waits ``pool_wait_timeout`` seconds for
    a free one; otherwise every connection is opened fresh.
    """
    drivername: str = 'mysql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 3306
    timeout: int = 0
    charset: str = 'utf8mb4'
    appname: str = None
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        if self.drivername not in SUPPORTED_DRIVERS:
            raise ValueError(f'unsupported drivername {self.drivername!r}, expected one of {SUPPORTED_DRIVERS}')
        missing = [name for name in REQUIRED_OPTIONS if not getattr(self, name)]
        if missing:
            raise ValueError(f'missing required options: {", ".join(missing)}')
        if not self.appname:
            self.appname = scriptname() or 'tablemeta'
