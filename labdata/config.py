from __future__ import annotations

import os
from typing import Any

import yaml

from .utils import LoaderError


_DEFAULTS: dict[str, dict[str, Any]] = {
    "storage": {
        "path": os.path.join("data", "lab_planner.json"),
        "data_key": "labPlannerData",
        "preferences_key": "labPlannerUI",
    },
    "workload": {
        "hours_per_day": 8.0,
        "bands": {"overloaded": 105.0, "at_risk": 90.0, "balanced": 40.0},
    },
    "campaigns": {"delivery_offset_working_days": 10},
    "import": {
        "default_absence_type": "ferie",
        "failure_reason": "Nessuna sigla trovata nel testo.",
        "reprocess_failure_reason": "Sigla non trovata nel testo.",
    },
    "share": {"base_url": "http://localhost:8501/"},
    "logging": {"level": "INFO"},
}

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def default_config() -> dict[str, Any]:
    """Configurazione completa con i soli valori di default."""
    cfg: dict[str, Any] = {}
    for section, values in _DEFAULTS.items():
        cfg[section] = {
            key: dict(value) if isinstance(value, dict) else value
            for key, value in values.items()
        }
    return cfg


def _section(cfg: dict[str, Any], name: str) -> dict[str, Any]:
    section = cfg.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise LoaderError(f"config: {name} deve essere un dizionario")
    return section


def _coerce_positive_float(value: Any, label: str) -> float:
    if isinstance(value, bool):
        raise LoaderError(f"{label} deve essere un numero > 0 (trovato: {value!r})")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise LoaderError(f"{label} deve essere un numero > 0 (trovato: {value!r})") from exc
    if parsed != parsed or parsed <= 0:
        raise LoaderError(f"{label} deve essere un numero > 0 (trovato: {value!r})")
    return parsed


def _coerce_non_negative_int(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise LoaderError(f"{label} deve essere un intero ≥ 0 (trovato: {value!r})")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = int(value.strip())
        except ValueError as exc:
            raise LoaderError(f"{label} deve essere un intero ≥ 0 (trovato: {value!r})") from exc
    else:
        raise LoaderError(f"{label} deve essere un intero ≥ 0 (trovato: {value!r})")
    if parsed < 0:
        raise LoaderError(f"{label} deve essere un intero ≥ 0 (trovato: {value!r})")
    return parsed


def _coerce_text(value: Any, label: str) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise LoaderError(f"{label} non può essere vuoto")
    return text


def load_config(path: str | None) -> dict[str, Any]:
    """Carica e valida la configurazione YAML; un file assente produce i default."""
    raw: dict[str, Any] = {}
    if path is not None and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise LoaderError("config: il documento YAML deve essere un dizionario")
        raw = loaded

    cfg = default_config()

    storage = _section(raw, "storage")
    for key in ("path", "data_key", "preferences_key"):
        if key in storage:
            cfg["storage"][key] = _coerce_text(storage[key], f"config: storage.{key}")

    workload = _section(raw, "workload")
    if "hours_per_day" in workload:
        cfg["workload"]["hours_per_day"] = _coerce_positive_float(
            workload["hours_per_day"], "config: workload.hours_per_day"
        )

    bands_cfg = workload.get("bands")
    if bands_cfg is not None:
        if not isinstance(bands_cfg, dict):
            raise LoaderError("config: workload.bands deve essere un dizionario")
        for key in ("overloaded", "at_risk", "balanced"):
            if key in bands_cfg:
                cfg["workload"]["bands"][key] = _coerce_positive_float(
                    bands_cfg[key], f"config: workload.bands.{key}"
                )
    bands = cfg["workload"]["bands"]
    if not bands["overloaded"] > bands["at_risk"] > bands["balanced"]:
        raise LoaderError(
            "config: workload.bands deve rispettare overloaded > at_risk > balanced "
            f"(trovato: {bands})"
        )

    campaigns = _section(raw, "campaigns")
    if "delivery_offset_working_days" in campaigns:
        cfg["campaigns"]["delivery_offset_working_days"] = _coerce_non_negative_int(
            campaigns["delivery_offset_working_days"],
            "config: campaigns.delivery_offset_working_days",
        )

    import_cfg = _section(raw, "import")
    for key in ("default_absence_type", "failure_reason", "reprocess_failure_reason"):
        if key in import_cfg:
            cfg["import"][key] = _coerce_text(import_cfg[key], f"config: import.{key}")

    share = _section(raw, "share")
    if "base_url" in share:
        cfg["share"]["base_url"] = _coerce_text(share["base_url"], "config: share.base_url")

    logging_cfg = _section(raw, "logging")
    if "level" in logging_cfg:
        level = _coerce_text(logging_cfg["level"], "config: logging.level").upper()
        if level not in _LOG_LEVELS:
            raise LoaderError(
                f"config: logging.level deve essere uno tra {sorted(_LOG_LEVELS)} "
                f"(trovato: {logging_cfg['level']!r})"
            )
        cfg["logging"]["level"] = level

    return cfg
