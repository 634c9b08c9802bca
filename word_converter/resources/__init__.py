"""Resource access for embedded images (host resolver, files, HTTP)."""

from word_converter.resources.loader import ResourceLoader, ResourceResolver
from word_converter.resources.local import LocalResourceResolver
from word_converter.resources.remote import RemoteFetcher, is_remote_url

__all__ = [
    "LocalResourceResolver",
    "RemoteFetcher",
    "ResourceLoader",
    "ResourceResolver",
    "is_remote_url",
]
