import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from ips_api.models import ErmForm
from ips_api.settings import get_settings

logger = logging.getLogger(__name__)

FORMS_FILE = "erm_forms.yaml"
OVERRIDES_FILE = "form_id_overrides.yaml"


@dataclass(frozen=True)
class FormCatalog:
    """Static ERM form list plus per-form availability notes."""

    forms: Tuple[ErmForm, ...] = ()
    known_failing: FrozenSet[int] = frozenset()
    known_empty: FrozenSet[int] = frozenset()

    def get(self, form_id: int) -> Optional[ErmForm]:
        for form in self.forms:
            if form.id == form_id:
                return form
        return None


@dataclass(frozen=True)
class FormIdOverrides:
    """Known-correct FormIDs for ERM navigation children, keyed by child code."""

    version: Optional[int] = None
    overrides: Dict[str, int] = field(default_factory=dict)

    def lookup(self, code: Any) -> Optional[int]:
        if code is None:
            return None
        return self.overrides.get(str(code))


_CACHE: Dict[Path, Tuple[int, Any]] = {}


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Catalog file %s does not exist.", path)
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Failed to load catalog file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.error("Catalog file %s must contain a mapping.", path)
        return {}
    return data


def _signature(path: Path) -> int:
    try:
        return path.stat().st_mtime_ns
    except OSError:
        return 0


def _cached(path: Path, builder):
    signature = _signature(path)
    cached = _CACHE.get(path)
    if cached is not None and cached[0] == signature:
        return cached[1]
    value = builder(_read_yaml(path))
    _CACHE[path] = (signature, value)
    return value


def _int_set(values: Any) -> FrozenSet[int]:
    result = set()
    for value in values or []:
        try:
            result.add(int(value))
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric form id %r in catalog", value)
    return frozenset(result)


def _build_form_catalog(data: Dict[str, Any]) -> FormCatalog:
    forms: List[ErmForm] = []
    for entry in data.get("forms") or []:
        try:
            forms.append(ErmForm(**entry))
        except (TypeError, ValidationError) as exc:
            logger.error("Form catalog entry %r is invalid: %s", entry, exc)
    logger.debug("Loaded %s ERM form definitions from catalog", len(forms))
    return FormCatalog(
        forms=tuple(forms),
        known_failing=_int_set(data.get("known_failing")),
        known_empty=_int_set(data.get("known_empty")),
    )


def _build_overrides(data: Dict[str, Any]) -> FormIdOverrides:
    overrides: Dict[str, int] = {}
    raw = data.get("overrides") or {}
    if not isinstance(raw, dict):
        logger.error("FormID overrides must be a mapping of code to form id.")
        raw = {}
    for code, form_id in raw.items():
        try:
            overrides[str(code)] = int(form_id)
        except (TypeError, ValueError):
            logger.warning("Ignoring FormID override %r=%r", code, form_id)
    logger.debug("Loaded %s FormID overrides", len(overrides))
    return FormIdOverrides(version=data.get("version"), overrides=overrides)


def get_form_catalog() -> FormCatalog:
    return _cached(get_settings().catalog_path / FORMS_FILE, _build_form_catalog)


def get_form_id_overrides() -> FormIdOverrides:
    return _cached(get_settings().catalog_path / OVERRIDES_FILE, _build_overrides)
