import random

import pytest

from diagnosis import analyze_text_symptoms, analyze_image, diagnose_plant_disease, IMAGE_CANDIDATES


# ---------------------------
# Text rules
# ---------------------------
@pytest.mark.parametrize("symptoms", [
    "Yellow spots on the underside of leaves",
    "looks like rust on older leaves",
    "ORANGE dust on leaves",
    "orange powder everywhere",
])
def test_leaf_rust(symptoms):
    result = analyze_text_symptoms(symptoms)
    assert result.diseaseName == "Coffee Leaf Rust"
    assert result.severity == "High Risk"
    assert result.confidence == "0.75"


@pytest.mark.parametrize("symptoms", ["leaves are wilting", "branches drooping in the afternoon", "whole tree is dying"])
def test_wilt(symptoms):
    result = analyze_text_symptoms(symptoms)
    assert result.diseaseName == "Coffee Wilt Disease"
    assert result.severity == "High Risk"


def test_dark_lesions_on_berries():
    result = analyze_text_symptoms("Brown sunken patches on green berries")
    assert result.diseaseName == "Coffee Berry Disease"
    assert result.confidence == "0.80"


def test_dark_lesions_on_leaves():
    result = analyze_text_symptoms("black marks with light centers on leaves")
    assert result.diseaseName == "Coffee Brown Eye Spot"
    assert result.severity == "Medium Risk"


def test_berry_borer():
    result = analyze_text_symptoms("small holes in the cherries")
    assert result.diseaseName == "Coffee Berry Borer"
    assert result.confidence == "0.90"


def test_white_powder_is_mildew_not_rust():
    result = analyze_text_symptoms("white powder on leaves")
    assert result.diseaseName == "Powdery Mildew"
    assert result.severity == "Low Risk"


def test_first_rule_wins():
    result = analyze_text_symptoms("yellow leaves and wilting branches")
    assert result.diseaseName == "Coffee Leaf Rust"


@pytest.mark.parametrize("symptoms", ["the plant looks fine", "leaves curling", ""])
def test_unidentified(symptoms):
    result = analyze_text_symptoms(symptoms)
    assert result.diseaseName == "Unidentified Condition"
    assert result.confidence == "0.3"
    assert result.severity == "Medium Risk"


def test_notes_describe_text_path():
    assert analyze_text_symptoms("rust").analysisNotes.startswith("Text Analysis")


# ---------------------------
# Image placeholder
# ---------------------------
class PickLast:
    def choice(self, seq):
        return seq[-1]


def test_image_returns_canned_record():
    names = {record["diseaseName"] for record, _ in IMAGE_CANDIDATES}
    for seed in range(10):
        result = analyze_image("/objects/uploads/abc", rng=random.Random(seed))
        assert result.diseaseName in names
        assert result.confidence in {"0.85", "0.78", "0.65"}
        assert "placeholder" in result.analysisNotes


def test_image_choice_uses_given_rng():
    result = analyze_image("/objects/uploads/abc", rng=PickLast())
    assert result.diseaseName == "Coffee Bacterial Blight"
    assert result.confidence == "0.65"
    assert "65%" in result.analysisNotes


def test_image_path_needs_image_method():
    result = diagnose_plant_disease("wilting", image_url="/objects/x", diagnosis_method="text")
    assert result.diseaseName == "Coffee Wilt Disease"


def test_image_path_when_method_omitted():
    result = diagnose_plant_disease("wilting", image_url="/objects/x", rng=PickLast())
    assert result.diseaseName == "Coffee Bacterial Blight"


def test_no_image_uses_text_rules():
    result = diagnose_plant_disease("rust", diagnosis_method="image")
    assert result.diseaseName == "Coffee Leaf Rust"
