from __future__ import annotations

import importlib.util
from pathlib import Path

import numpy as np
import pytest

pytest.importorskip("tensorflow")

from wastecam.models.classifier import InferenceAdapter  # noqa: E402

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "build_placeholder_model.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("build_placeholder_model", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(module)
    return module


@pytest.mark.parametrize("filename", ["model.keras", "model.h5"])
def test_placeholder_model_loads_through_adapter(tmp_path: Path, filename: str) -> None:
    script = _load_script()
    output = tmp_path / "models" / filename
    assert script.main(["--output", str(output)]) == 0
    assert output.exists()

    adapter = InferenceAdapter(str(output))
    handle = adapter.load()
    try:
        probabilities = adapter.infer(handle, np.zeros((1, 224, 224, 3), dtype=np.float32))
    finally:
        adapter.release(handle)

    assert probabilities.shape == (4,)
    assert probabilities.sum() == pytest.approx(1.0, abs=1e-3)
