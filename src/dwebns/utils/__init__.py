"""Low-level helpers shared by the core and services layers.

Attributes:
    http: Size-bounded reading of aiohttp response bodies.
    account: Sending account address loaded from an environment variable.

Note:
    The utils layer imports nothing from ``dwebns.core`` or
    ``dwebns.services``.
"""
