"""Footprints map: download a KMZ export and convert it to GeoJSON."""

from __future__ import annotations

import logging
import os
import zipfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

import httpx

from ..config import FootprintsConfig
from ..errors import FetchError, PersistError, SyncError
from ..storage import write_json

logger = logging.getLogger("profilesync.footprints")

KML_ENTRY = "doc.kml"


def _local(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def _find(element: ET.Element, name: str) -> ET.Element | None:
    for child in element.iter():
        if child is not element and _local(child.tag) == name:
            return child
    return None


def _text(element: ET.Element, name: str) -> str | None:
    found = _find(element, name)
    if found is None or found.text is None:
        return None
    return found.text.strip()


def parse_coordinates(raw: str) -> list[list[float]]:
    """``lon,lat[,alt] lon,lat[,alt] ...`` → ``[[lon, lat], ...]``."""
    coords: list[list[float]] = []
    for triple in raw.split():
        parts = triple.split(",")
        if len(parts) < 2:
            continue
        try:
            coords.append([float(parts[0]), float(parts[1])])
        except ValueError:
            logger.debug("Ignoring malformed coordinate %r", triple)
    return coords


def placemark_geometry(placemark: ET.Element) -> dict[str, Any] | None:
    # Later shapes win, matching how a placemark carrying several is drawn
    geometry: dict[str, Any] | None = None

    point = _find(placemark, "Point")
    if point is not None:
        coords = parse_coordinates(_text(point, "coordinates") or "")
        if coords:
            geometry = {"type": "Point", "coordinates": coords[0]}

    line = _find(placemark, "LineString")
    if line is not None:
        coords = parse_coordinates(_text(line, "coordinates") or "")
        if coords:
            geometry = {"type": "LineString", "coordinates": coords}

    polygon = _find(placemark, "Polygon")
    if polygon is not None:
        outer = _find(polygon, "outerBoundaryIs")
        ring = _find(outer, "LinearRing") if outer is not None else None
        if ring is not None:
            coords = parse_coordinates(_text(ring, "coordinates") or "")
            if coords:
                geometry = {"type": "Polygon", "coordinates": [coords]}

    return geometry


def kml_to_geojson(kml: str | bytes) -> dict[str, Any]:
    root = ET.fromstring(kml)
    features = []
    for placemark in (el for el in root.iter() if _local(el.tag) == "Placemark"):
        geometry = placemark_geometry(placemark)
        if geometry is None:
            continue
        properties: dict[str, Any] = {}
        for key in ("name", "description"):
            value = _text(placemark, key)
            if value is not None:
                properties[key] = value
        features.append({"type": "Feature", "properties": properties, "geometry": geometry})
    return {"type": "FeatureCollection", "features": features}


def convert_kmz(kmz_path: Path, geojson_path: Path) -> dict[str, Any]:
    """Read ``doc.kml`` out of a KMZ archive and write it as GeoJSON."""
    logger.info("Converting %s", kmz_path)
    try:
        with zipfile.ZipFile(kmz_path) as archive:
            try:
                kml = archive.read(KML_ENTRY)
            except KeyError as exc:
                raise SyncError(f"Could not find {KML_ENTRY} in {kmz_path}") from exc
    except (OSError, zipfile.BadZipFile) as exc:
        raise SyncError(f"Cannot open KMZ file {kmz_path}: {exc}") from exc

    try:
        geojson = kml_to_geojson(kml)
    except ET.ParseError as exc:
        raise SyncError(f"Invalid KML in {kmz_path}: {exc}") from exc
    write_json(geojson_path, geojson)
    logger.info("Features extracted: %d", len(geojson["features"]))
    return geojson


class FootprintsSync:
    def __init__(self, cfg: FootprintsConfig, *, transport: httpx.BaseTransport | None = None) -> None:
        self.cfg = cfg
        self._client = httpx.Client(timeout=cfg.timeout, follow_redirects=True, transport=transport)
        self.stats = {"features": 0}

    def download(self) -> Path:
        logger.info("Downloading KMZ file from %s", self.cfg.kmz_url)
        try:
            resp = self._client.get(self.cfg.kmz_url)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(f"KMZ download failed: {exc}") from exc
        path = self.cfg.kmz_path
        try:
            if path.parent != Path("."):
                os.makedirs(path.parent, exist_ok=True)
            path.write_bytes(resp.content)
        except OSError as exc:
            raise PersistError(f"Cannot write {path}: {exc}") from exc
        return path

    def run(self) -> dict[str, Any]:
        geojson = convert_kmz(self.download(), self.cfg.geojson_path)
        self.stats["features"] = len(geojson["features"])
        return geojson

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> FootprintsSync:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
