"""Recommended nights per city, used when first allocating a trip."""

from backend.app.config import get_settings

RECOMMENDED_NIGHTS: dict[str, int] = {
    # Japan
    "Tokyo": 4, "Kyoto": 3, "Osaka": 2, "Hakone": 2, "Nara": 1, "Hiroshima": 2,
    "Fukuoka": 2, "Nikko": 1,
    # Thailand
    "Bangkok": 3, "Chiang Mai": 3, "Chiang Rai": 2, "Phuket": 4, "Krabi": 3,
    "Koh Samui": 4, "Koh Phangan": 3, "Koh Tao": 3, "Koh Lanta": 3, "Koh Phi Phi": 2,
    "Sukhothai": 1, "Ayutthaya": 1, "Pai": 2, "Hua Hin": 2, "Kanchanaburi": 2,
    # Vietnam
    "Hanoi": 3, "Ho Chi Minh City": 3, "Da Nang": 2, "Hoi An": 3, "Hue": 2,
    "Nha Trang": 3, "Ha Long Bay": 2, "Ninh Binh": 2, "Sapa": 2,
    # Hawaii
    "Honolulu": 4, "Maui": 4, "Kauai": 3, "Big Island": 3,
    # Spain
    "Barcelona": 4, "Madrid": 3, "Seville": 3, "Valencia": 2, "Granada": 2,
    "San Sebastian": 2, "Bilbao": 2, "Malaga": 2, "Toledo": 1, "Cordoba": 1,
    # Portugal
    "Lisbon": 4, "Porto": 3, "Lagos": 3, "Sintra": 1, "Cascais": 1, "Faro": 2,
    # France
    "Paris": 4, "Nice": 3, "Lyon": 2, "Marseille": 2,
    # Italy
    "Rome": 4, "Florence": 3, "Venice": 2, "Milan": 2, "Naples": 2, "Amalfi": 3,
    # Greece
    "Athens": 3, "Santorini": 3, "Mykonos": 3,
    # Turkey
    "Istanbul": 4, "Cappadocia": 3, "Antalya": 4,
}  # fmt: skip


def recommended_nights(city: str) -> int:
    """Recommended nights for a city, falling back to the configured default."""
    return RECOMMENDED_NIGHTS.get(city, get_settings().default_nights)
