"""Catalog file emission.

Writes one retailer's catalog as three artifacts under
``<output_dir>/<country>/<retailer>-<country>/``:

- ``catalog.json``: pretty-printed ``{"store_info": ..., "products": [...]}``
- ``catalog.jsonl``: one compact product object per line
- ``catalog.jsonl.gz``: gzip of the JSONL file

Each file is written to a temporary sibling and moved into place, so a
crash mid-write never leaves a truncated catalog behind.
"""

from __future__ import annotations

import gzip
import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from catalog_crawler.catalog.models import ProductRecord, StoreInfo

logger = logging.getLogger(__name__)

_UNSAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9.-]")


def retailer_slug(name: str) -> str:
    """Filesystem-safe, lower-case retailer name."""
    return _UNSAFE_NAME_RE.sub("-", name).lower()


@dataclass(frozen=True)
class CatalogPaths:
    directory: Path
    json_path: Path
    jsonl_path: Path
    gzip_path: Path


def _atomic_write(path: Path, data: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class CatalogEmitter:
    """Writes JSON, JSONL and gzipped JSONL catalogs for a retailer."""

    def __init__(self, output_dir: str | Path) -> None:
        self._output_dir = Path(output_dir)

    def paths_for(self, retailer: str, country: str) -> CatalogPaths:
        directory = self._output_dir / country / f"{retailer_slug(retailer)}-{country}"
        jsonl_path = directory / "catalog.jsonl"
        return CatalogPaths(
            directory=directory,
            json_path=directory / "catalog.json",
            jsonl_path=jsonl_path,
            gzip_path=jsonl_path.with_name(jsonl_path.name + ".gz"),
        )

    def write(self, store_info: StoreInfo, products: Sequence[ProductRecord]) -> CatalogPaths:
        """Write all three artifacts and return their paths."""
        paths = self.paths_for(store_info.name, store_info.country)
        paths.directory.mkdir(parents=True, exist_ok=True)

        info = store_info.model_copy(update={"total_products": len(products)})
        documents = [product.model_dump(mode="json") for product in products]

        catalog = {"store_info": info.model_dump(mode="json"), "products": documents}
        _atomic_write(paths.json_path, json.dumps(catalog, indent=2).encode("utf-8"))

        jsonl = "\n".join(json.dumps(doc, separators=(",", ":")) for doc in documents).encode("utf-8")
        _atomic_write(paths.jsonl_path, jsonl)
        _atomic_write(paths.gzip_path, gzip.compress(jsonl))

        logger.info(
            "Catalog written to %s",
            paths.directory,
            extra={"retailer": store_info.name, "country": store_info.country, "products_count": len(products)},
        )
        return paths
