"""HTTP server for uploading BMP images and running image filters over them."""

__version__ = "0.1.0"
__all__ = ["__version__"]