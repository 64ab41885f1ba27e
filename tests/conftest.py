from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import pytest

SAMPLE_RECIPES = """\
Italian\ttomato\tbasil\tolive_oil\tgarlic
Italian\ttomato\tparmesan\tgarlic
Mexican\ttomato\tchili\tcorn\tlime
Mexican\tchili\tcorn\tcilantro
Japanese\tsoy_sauce\trice\tginger\tscallion
Japanese\trice\tnori\tsoy_sauce
Chinese\tsoy_sauce\tginger\tscallion\trice
"""


@pytest.fixture
def sample_path(tmp_path):
    path = tmp_path / "recipes.tsv"
    path.write_text(SAMPLE_RECIPES, encoding="utf-8")
    return path


@pytest.fixture
def sample_documents():
    return {
        "Italian": "tomato basil olive_oil garlic tomato parmesan garlic",
        "Mexican": "tomato chili corn lime chili corn cilantro",
        "Japanese": "soy_sauce rice ginger scallion rice nori soy_sauce",
        "Chinese": "soy_sauce ginger scallion rice",
    }
