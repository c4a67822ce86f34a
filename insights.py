"""
Placeholder "ML" outputs for farmers and vendors.

None of this is a model. Yield predictions and demand forecasts are random
draws inside fixed ranges so the frontend has realistic-looking data, and
spoilage risk is a lookup on days left before the expiry estimate. Every
generator takes an optional ``random.Random`` so callers (and tests) can seed it.
"""

import math
import random
from datetime import datetime, timezone, timedelta
from typing import Optional

from schemas import PRODUCT_CATEGORIES

MARKETS = [
    "Central Farmers Market",
    "East District Food Hub",
    "Western Agricultural Exchange",
    "Northern Territory Trade Center",
    "Southern Cooperative Market",
]

# (days strictly below, level, score); first match wins
SPOILAGE_THRESHOLDS = [
    (3, "critical", 0.9),
    (7, "high", 0.7),
    (14, "medium", 0.4),
]

SPOILAGE_RECOMMENDATIONS = {
    "critical": [
        "Sell immediately at discount",
        "Process into longer-lasting form",
        "Donate to local food bank within 24 hours",
    ],
    "high": [
        "Adjust storage conditions to extend shelf life",
        "Consider promotional pricing",
        "Move to high-visibility marketplace location",
    ],
    "medium": [
        "Monitor storage conditions daily",
        "Check for signs of early deterioration",
        "Plan marketing strategy for next week",
    ],
    "low": [
        "Standard storage procedures are sufficient",
        "Regular quality checks recommended",
    ],
}


def _as_utc(dt: datetime) -> datetime:
    # Mongo hands back naive datetimes that are already UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def mock_yield_prediction(farm_id: str, crop: dict, rng: Optional[random.Random] = None) -> dict:
    rng = rng or random.Random()
    now = datetime.now(timezone.utc)
    expected = rng.randrange(3000, 8000)
    return {
        "farm": farm_id,
        "crop": {
            "name": crop["name"],
            "variety": crop.get("variety"),
            "area": crop["area"],
        },
        "prediction": {
            "expectedYield": expected,
            "yieldUnit": "kg/ha",
            "lowerBound": math.floor(expected * 0.9),
            "upperBound": math.floor(expected * 1.1),
            "confidenceLevel": 0.85,
        },
        "factors": {
            "soilQuality": round(rng.random() * 10, 2),
            "weatherConditions": rng.choice(["moderate rainfall", "good sunlight"]),
            "pestRisks": ["aphids", "whiteflies"] if rng.random() > 0.5 else ["none"],
            "rainfall": rng.randrange(500, 800),
            "temperature": {
                "min": round(15 + rng.random() * 5, 1),
                "max": round(25 + rng.random() * 5, 1),
                "average": round(20 + rng.random() * 5, 1),
            },
        },
        "recommendations": {
            "irrigationSchedule": "Twice weekly, 20mm per session",
            "fertilizers": [
                {
                    "type": "Nitrogen-rich",
                    "amount": 50,
                    "unit": "kg/ha",
                    "applicationTime": "Every 2 weeks",
                }
            ],
            "pestControl": ["Monitor for pests regularly", "Use organic pesticides if needed"],
            "harvestTime": now + timedelta(days=rng.randint(1, 90)),
        },
    }


def spoilage_level(days_until_expiry: int):
    for limit, level, score in SPOILAGE_THRESHOLDS:
        if days_until_expiry < limit:
            return level, score
    return "low", 0.1


def spoilage_risk(product: dict, now: Optional[datetime] = None) -> dict:
    now = _as_utc(now or datetime.now(timezone.utc))
    expiry = _as_utc(product["expiryEstimate"])
    days = math.floor((expiry - now).total_seconds() / 86400)
    level, score = spoilage_level(days)
    return {
        "productId": product["id"],
        "productName": product.get("name"),
        "expiryDate": product["expiryEstimate"],
        "daysUntilExpiry": days,
        "riskScore": score,
        "riskLevel": level,
        "recommendations": SPOILAGE_RECOMMENDATIONS[level],
    }


def demand_forecasts(rng: Optional[random.Random] = None) -> list:
    rng = rng or random.Random()
    forecasts = []
    for category in PRODUCT_CATEGORIES:
        score = rng.random()
        trend, price = "stable", "maintain"
        if score > 0.7:
            trend, price = "increasing", "consider 5-10% increase"
        elif score < 0.3:
            trend, price = "decreasing", "consider 5-10% discount"
        forecasts.append({
            "category": category,
            "demandScore": score,
            "demandTrend": trend,
            "priceRecommendation": price,
            "bestMarkets": rng.sample(MARKETS, rng.randint(2, 3)),
            "forecast": {
                "nextWeek": rng.randrange(50, 100),
                "nextMonth": rng.randrange(100, 300),
            },
        })
    return forecasts
