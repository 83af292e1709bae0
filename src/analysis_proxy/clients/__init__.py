"""HTTP clients for the upstream inference service."""

from analysis_proxy.clients.upstream import ImageUpload, UpstreamClient, UpstreamResponse

__all__ = [
    "ImageUpload",
    "UpstreamClient",
    "UpstreamResponse",
]
