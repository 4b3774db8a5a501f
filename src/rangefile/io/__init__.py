"""I/O layer for rangefile - storage backends the range index is reconciled against."""

# Re-export these for import convenience
from .base import RangeBackend, AsyncRangeBackend
from .local import open_local_backend, open_local_backend_async
from .http_sync import open_http_backend
from .http_async import open_http_backend_async


def _is_url(target) -> bool:
    return str(target).startswith(('http://', 'https://'))


def with_sas(url: str, sas: str | None) -> str:
    """Append a SAS query string to a URL that carries none."""
    if not sas or "?" in url:
        return url
    return f"{url}?{sas.lstrip('?')}"


def open_backend(target, *, sas: str | None = None, **options):
    """Factory function to create the appropriate RangeBackend for a path or URL."""
    if _is_url(target):
        return open_http_backend(with_sas(str(target), sas), **options)
    return open_local_backend(target, **options)


async def open_backend_async(target, *, sas: str | None = None, **options):
    """Factory function to create the appropriate AsyncRangeBackend for a path or URL."""
    if _is_url(target):
        return await open_http_backend_async(with_sas(str(target), sas), **options)
    return await open_local_backend_async(target, **options)
