"""swapfeed - swap activity feeds and constant-product quotes for MiniDex pools."""

__version__ = "0.1.0"
