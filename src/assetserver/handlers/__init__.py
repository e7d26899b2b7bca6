"""
Request handlers: callables taking an HTTPRequest and returning an
HTTPResponse, registered on the router.

    AssetHandler   welcome page, single assets and bundles
"""

from .assets import AssetHandler, DEFAULT_MAX_AGE

__all__ = [
    "AssetHandler",
    "DEFAULT_MAX_AGE",
]
