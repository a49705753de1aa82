"""
Rule-based coffee disease diagnosis.

Text reports are matched against an ordered keyword table; the first rule
whose keywords appear in the lowercased symptoms wins. Photo reports do not
get real image analysis yet: one of a few canned results is picked at random
and the notes say so.
"""
import random
from typing import Callable, List, Optional, Tuple

from schemas import DiagnosisResult

LEAF_RUST = {
    "diseaseName": "Coffee Leaf Rust",
    "description": "Fungal disease (Hemileia vastatrix) causing yellow-orange powdery spots on leaf undersides",
    "severity": "High Risk",
    "treatment": "Apply copper-based fungicide immediately. Use systemic fungicides like propiconazole. "
                 "Improve plant nutrition with potassium and phosphorus fertilizers.",
    "prevention": "Plant rust-resistant varieties (e.g., Ruiru 11, Batian). Maintain proper plant spacing "
                  "for air circulation. Regular pruning and removal of infected leaves.",
}

BERRY_DISEASE = {
    "diseaseName": "Coffee Berry Disease",
    "description": "Fungal infection (Colletotrichum kahawae) causing dark sunken lesions on green berries",
    "severity": "High Risk",
    "treatment": "Apply copper fungicides during flowering and early berry development. "
                 "Remove and destroy infected berries immediately.",
    "prevention": "Use certified disease-free seedlings. Ensure good drainage and avoid overhead "
                  "irrigation during flowering.",
}

BROWN_EYE_SPOT = {
    "diseaseName": "Coffee Brown Eye Spot",
    "description": "Fungal disease causing brown spots with light centers on leaves",
    "severity": "Medium Risk",
    "treatment": "Apply copper-based fungicides. Improve air circulation around plants.",
    "prevention": "Maintain proper plant spacing. Remove fallen leaves. Avoid overhead watering.",
}

WILT_DISEASE = {
    "diseaseName": "Coffee Wilt Disease",
    "description": "Fungal infection (Fusarium xylarioides) affecting the vascular system, "
                   "causing wilting and branch dieback",
    "severity": "High Risk",
    "treatment": "Remove affected plants immediately to prevent spread. Improve soil drainage. "
                 "Apply organic soil amendments.",
    "prevention": "Use disease-resistant varieties. Improve soil drainage. Practice crop rotation. "
                  "Use certified disease-free seedlings.",
}

BERRY_BORER = {
    "diseaseName": "Coffee Berry Borer",
    "description": "Small beetles (Hypothenemus hampei) boring circular holes in coffee berries",
    "severity": "Medium Risk",
    "treatment": "Use pheromone traps to monitor and capture adults. Apply organic insecticides like "
                 "neem oil or Beauveria bassiana.",
    "prevention": "Harvest ripe berries promptly. Clean farm of fallen berries. Use shade trees to create "
                  "unfavorable conditions for borers.",
}

POWDERY_MILDEW = {
    "diseaseName": "Powdery Mildew",
    "description": "Fungal disease causing white powdery growth on leaves",
    "severity": "Low Risk",
    "treatment": "Apply sulfur-based fungicides. Improve air circulation around plants.",
    "prevention": "Maintain proper plant spacing. Avoid overhead watering. Remove affected plant parts.",
}

BACTERIAL_BLIGHT = {
    "diseaseName": "Coffee Bacterial Blight",
    "description": "Bacterial infection causing water-soaked spots that turn brown",
    "severity": "Medium Risk",
    "treatment": "Apply copper-based bactericides. Improve drainage and reduce leaf wetness periods.",
    "prevention": "Avoid overhead watering. Maintain proper plant spacing. Use drip irrigation if possible.",
}

UNIDENTIFIED = {
    "diseaseName": "Unidentified Condition",
    "description": "Unable to identify specific disease from provided symptoms",
    "severity": "Medium Risk",
    "treatment": "Contact your local agricultural extension officer for proper identification. "
                 "Take clear photos of affected plant parts.",
    "prevention": "Maintain good plant hygiene, proper spacing, and regular monitoring of plant health.",
}


def _any(text: str, *words: str) -> bool:
    return any(w in text for w in words)


def _is_rust(s: str) -> bool:
    return _any(s, "rust", "yellow", "orange") or ("powder" in s and "white" not in s)


def _is_dark_berry(s: str) -> bool:
    return _any(s, "brown", "black", "dark", "spot") and _any(s, "berry", "berries", "fruit")


def _is_dark_leaf(s: str) -> bool:
    return _any(s, "brown", "black", "dark", "spot")


def _is_wilt(s: str) -> bool:
    return _any(s, "wilt", "droop", "dying", "weak")


def _is_borer(s: str) -> bool:
    return _any(s, "bore", "hole", "insect", "bug", "pest", "eaten")


def _is_mildew(s: str) -> bool:
    return "white" in s and "powder" in s


# (predicate, record, confidence, notes); order matters
TEXT_RULES: List[Tuple[Callable[[str], bool], dict, str, str]] = [
    (_is_rust, LEAF_RUST, "0.75",
     "Text Analysis: Symptoms strongly suggest Coffee Leaf Rust based on yellow/powder description. "
     "High confidence match."),
    (_is_dark_berry, BERRY_DISEASE, "0.80",
     "Text Analysis: Brown/black symptoms on berries indicate Coffee Berry Disease. High confidence match."),
    (_is_dark_leaf, BROWN_EYE_SPOT, "0.65",
     "Text Analysis: Brown/black leaf symptoms suggest Coffee Brown Eye Spot. Moderate confidence."),
    (_is_wilt, WILT_DISEASE, "0.85",
     "Text Analysis: Wilting symptoms strongly indicate Coffee Wilt Disease. Immediate action required."),
    (_is_borer, BERRY_BORER, "0.90",
     "Text Analysis: Hole/boring symptoms clearly indicate Coffee Berry Borer. Very high confidence."),
    (_is_mildew, POWDERY_MILDEW, "0.70",
     "Text Analysis: White powder symptoms indicate Powdery Mildew. Good confidence match."),
]

FALLBACK_CONFIDENCE = "0.3"
FALLBACK_NOTES = ("Text Analysis: Symptoms require more specific description for accurate diagnosis. "
                  "Consider providing additional details or taking photos.")

# Candidates for the photo placeholder, with the confidence reported for each
IMAGE_CANDIDATES: List[Tuple[dict, float]] = [
    (LEAF_RUST, 0.85),
    (BERRY_DISEASE, 0.78),
    (BACTERIAL_BLIGHT, 0.65),
]


def analyze_text_symptoms(symptoms: str) -> DiagnosisResult:
    lowered = (symptoms or "").lower()
    for matches, record, confidence, notes in TEXT_RULES:
        if matches(lowered):
            return DiagnosisResult(**record, confidence=confidence, analysisNotes=notes)
    return DiagnosisResult(**UNIDENTIFIED, confidence=FALLBACK_CONFIDENCE, analysisNotes=FALLBACK_NOTES)


def analyze_image(image_url: str, symptoms: str = "", rng: Optional[random.Random] = None) -> DiagnosisResult:
    # TODO: replace the random pick with a call to a trained vision model once one is hosted
    record, confidence = (rng or random).choice(IMAGE_CANDIDATES)
    return DiagnosisResult(
        **record,
        confidence=str(confidence),
        analysisNotes=(
            f"Image Analysis (placeholder): visual symptoms consistent with {record['diseaseName']}. "
            f"Confidence: {round(confidence * 100)}%. "
            "Recommendation: Verify diagnosis with agricultural extension officer."
        ),
    )


def diagnose_plant_disease(symptoms: str, image_url: Optional[str] = None,
                           diagnosis_method: Optional[str] = None,
                           rng: Optional[random.Random] = None) -> DiagnosisResult:
    """Photos go through the image placeholder, everything else through the keyword table."""
    if image_url and diagnosis_method in (None, "image"):
        return analyze_image(image_url, symptoms, rng=rng)
    return analyze_text_symptoms(symptoms)
