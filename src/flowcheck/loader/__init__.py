"""Loader module for workflow files and diagnostic message catalogs."""

from flowcheck.loader.messages import MessageCatalog, MessageError, load_catalog
from flowcheck.loader.yaml_loader import LoadError, load_workflow, parse_workflow

__all__ = [
    "LoadError",
    "MessageCatalog",
    "MessageError",
    "load_catalog",
    "load_workflow",
    "parse_workflow",
]
