"""
Plant condition knowledge used to ground the assistant's system prompt.

Callers depend on the ``KnowledgeBase`` protocol only, so the static table
below can be swapped for a store-backed lookup without touching them.
"""
from types import MappingProxyType
from typing import List, Mapping, Protocol


class KnowledgeBase(Protocol):
    def get(self, name: str) -> str:
        ...

    def names(self) -> List[str]:
        ...


CONDITION_INFO: Mapping[str, str] = MappingProxyType({
    "Powdery Mildew": (
        "A fungal disease that appears as white powdery spots on leaves. It thrives in humid "
        "conditions with poor air circulation. Treatment includes fungicides, neem oil, and "
        "improving air circulation."
    ),
    "Leaf Spot": (
        "Caused by various fungi and bacteria, appearing as dark spots on leaves. It spreads in "
        "wet conditions. Treatment includes removing affected leaves, avoiding overhead watering, "
        "and fungicide application."
    ),
    "Blight": (
        "A rapid and complete chlorosis, browning, then death of plant tissues such as leaves, "
        "branches, twigs, or floral organs. Caused by fungi or bacteria. Treatment depends on the "
        "specific type of blight."
    ),
    "Rust": (
        "A fungal disease causing orange, yellow, or brown pustules on the undersides of leaves. "
        "Treatment includes fungicides, removing affected plants, and improving air circulation."
    ),
    "Bacterial Wilt": (
        "A bacterial disease causing rapid wilting. Plants may not show symptoms until the disease "
        "is advanced. Treatment is difficult; prevention through resistant varieties and clean "
        "tools is best."
    ),
    "Viral Infection": (
        "Causes mottling, distortion of leaves, and stunted growth. Most plant viruses are "
        "transmitted by insects. No chemical cure; affected plants should be removed to prevent "
        "spread."
    ),
    "Root Rot": (
        "Caused by overwatering and fungi in the soil, leading to decaying roots. Treatment "
        "includes improved drainage, reduced watering, and fungicides in severe cases."
    ),
    "Nutrient Deficiency": (
        "Not a disease but causes similar symptoms. Different deficiencies have specific symptoms. "
        "Treatment involves applying the appropriate fertilizer or adjusting soil pH."
    ),
    "Aphid Infestation": (
        "Tiny insects that suck plant sap, causing yellowing and curling of leaves. They also "
        "spread viral diseases. Treatment includes insecticidal soap, neem oil, or introducing "
        "beneficial insects."
    ),
    "Spider Mite Damage": (
        "Tiny pests that cause stippling on leaves and fine webbing. They thrive in hot, dry "
        "conditions. Treatment includes increasing humidity, insecticidal soap, and miticides."
    ),
})

GENERIC_CONDITION_INFO = (
    "This appears to be a plant health issue. Generally, treatment approaches include cultural "
    "practices (like proper watering and spacing), physical removal of affected parts, organic "
    "treatments (like neem oil or compost tea), and chemical controls as a last resort."
)


class StaticKnowledgeBase:
    """In-process, read-only lookup. Exact, case-sensitive keys."""

    def __init__(self, entries: Mapping[str, str], fallback: str):
        if not fallback:
            raise ValueError("Fallback text cannot be empty")
        self._entries = MappingProxyType(dict(entries))
        self._fallback = fallback

    def get(self, name: str) -> str:
        return self._entries.get(name) or self._fallback

    def names(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def build_knowledge_base(
    entries: Mapping[str, str] = CONDITION_INFO,
    fallback: str = GENERIC_CONDITION_INFO,
) -> StaticKnowledgeBase:
    return StaticKnowledgeBase(entries, fallback)


_default_knowledge_base = build_knowledge_base()


def get_knowledge_base() -> StaticKnowledgeBase:
    """Process-wide knowledge base, built once at import."""
    return _default_knowledge_base
