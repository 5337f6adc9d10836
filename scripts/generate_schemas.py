# scripts/generate_schemas.py
"""Generate JSON schemas for the public Pydantic models."""

from __future__ import annotations

import json
from inspect import isclass
from pathlib import Path

import gleaner.extractors as extractors
import gleaner.models as models
from gleaner.models import GleanerBaseModel


def iter_models() -> list[type[GleanerBaseModel]]:
    """Return public models and extractor item schemas deriving from :class:`GleanerBaseModel`."""
    result: list[type[GleanerBaseModel]] = []
    for module in (models, extractors):
        for name in getattr(module, "__all__", []):
            obj = getattr(module, name, None)
            if (
                isclass(obj)
                and issubclass(obj, GleanerBaseModel)
                and obj is not GleanerBaseModel
            ):
                result.append(obj)
    return result


def main() -> None:  # pragma: no cover - script entry
    """Generate schemas in the ``docs/schemas`` directory."""
    root = Path(__file__).resolve().parents[1]
    out_dir = root / "docs" / "schemas"
    out_dir.mkdir(parents=True, exist_ok=True)

    for model in iter_models():
        schema = model.model_json_schema()
        path = out_dir / f"{model.__name__}.json"
        path.write_text(json.dumps(schema, indent=2, sort_keys=True))


if __name__ == "__main__":  # pragma: no cover - CLI execution
    main()
