"""authz: role/policy authorization decision engine with a Redis cache-aside layer."""

__version__ = "1.0.0"
