"""
One-shot data loading for a tree.

The source is either in-memory (a list of node descriptions, or a JSON string
of one) or remote (a URL fetched with requests). Exactly one must be set.
"""
from __future__ import annotations
import asyncio
import json
from typing import Any

import requests
from loguru import logger
from pydantic import ValidationError

from .exceptions import DataLoadError, DataSourceError
from .models import NodeData, TreeViewOptions


async def load_data(options: TreeViewOptions) -> list[NodeData]:
    """Resolve the configured data source into validated node descriptions."""
    has_local = options.data is not None
    has_remote = bool(options.ajax_url)

    if has_local and has_remote:
        raise DataSourceError("Both local data and a remote URL are configured.")
    if has_local:
        raw = load_local(options.data)
    elif has_remote:
        raw = await asyncio.to_thread(fetch_remote, options.ajax_url, options.ajax_config)
    else:
        raise DataSourceError("No data source defined.")

    return parse_nodes(raw)


def load_local(data: Any) -> Any:
    if isinstance(data, str):
        try:
            return json.loads(data)
        except json.JSONDecodeError as exc:
            raise DataLoadError(f"Malformed JSON data: {exc}") from exc
    return data


def fetch_remote(url: str, config: dict[str, Any]) -> Any:
    """Fetch JSON node data; config holds requests keyword arguments plus method."""
    kwargs = dict(config)
    method = str(kwargs.pop("method", "GET")).upper()
    logger.debug("Fetching tree data: {} {}", method, url)
    try:
        response = requests.request(method, url, **kwargs)
        response.raise_for_status()
        return response.json()
    except requests.RequestException as exc:
        raise DataLoadError(f"Failed to fetch {url!r}: {exc}") from exc


def parse_nodes(raw: Any) -> list[NodeData]:
    if raw is None:
        raise DataLoadError("No data provided!")
    if not isinstance(raw, list):
        raise DataLoadError(f"Expected a list of nodes, got {type(raw).__name__}")
    try:
        return [item if isinstance(item, NodeData) else NodeData.model_validate(item) for item in raw]
    except ValidationError as exc:
        raise DataLoadError(f"Invalid node data: {exc}") from exc
