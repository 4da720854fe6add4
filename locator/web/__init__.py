from .download import download_file

__all__ = ["download_file"]
