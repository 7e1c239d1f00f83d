"""
This module supports the NutritionScan page.

It provides:
- `NutritionService`, the typed wrapper around the `/nutri-audit` endpoints: meal
  CRUD, daily and multi-day summaries, and AI meal analysis from a photo, an image
  URL or a food name. The analysis itself runs on the server.
- The renal diet daily limits and helpers to compare intake against them.
- A small table of common foods used for quick suggestions while typing.
"""
# dialysislive/nutrition.py

import base64
import logging

from dialysislive.models import Meal

logger = logging.getLogger(__name__)

MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")
NUTRIENTS = ("sodium", "potassium", "phosphorus", "protein")

# mg, except protein in g
DAILY_LIMITS = {
    "sodium": 2000,
    "potassium": 2500,
    "phosphorus": 1000,
    "protein": 50,
}

NUTRIENT_UNITS = {"sodium": "mg", "potassium": "mg", "phosphorus": "mg", "protein": "g", "calories": "kcal"}

COMMON_FOODS = [
    {"name": "Apple", "sodium": 1, "potassium": 107, "phosphorus": 11, "protein": 0.3},
    {"name": "Banana", "sodium": 1, "potassium": 358, "phosphorus": 22, "protein": 1.1},
    {"name": "White Rice (1 cup)", "sodium": 5, "potassium": 55, "phosphorus": 68, "protein": 4.3},
    {"name": "Chicken Breast", "sodium": 74, "potassium": 256, "phosphorus": 228, "protein": 31},
    {"name": "Egg (Large)", "sodium": 71, "potassium": 69, "phosphorus": 91, "protein": 6.3},
    {"name": "Salmon Fillet", "sodium": 59, "potassium": 363, "phosphorus": 240, "protein": 20},
    {"name": "Green Beans", "sodium": 6, "potassium": 211, "phosphorus": 38, "protein": 1.8},
    {"name": "Blueberries", "sodium": 1, "potassium": 77, "phosphorus": 12, "protein": 0.7},
]

SUPPORTED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp")


class NutritionService:
    """Wraps the nutrition audit endpoints."""
    def __init__(self, client):
        self.client = client

    def create_meal(self, meal_type, name, nutrients=None, description=None, serving_size=None,
                    image_url=None, logged_at=None, notes=None) -> Meal:
        if meal_type not in MEAL_TYPES:
            raise ValueError(f"Unknown meal type: {meal_type}")
        payload = {
            "mealType": meal_type,
            "name": name,
            "nutrients": nutrients,
            "description": description,
            "servingSize": serving_size,
            "imageUrl": image_url,
            "loggedAt": logged_at,
            "notes": notes,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        return Meal.from_api(self.client.post_data("/nutri-audit/meals", json=payload, key="meal"))

    def list_meals(self, from_=None, to=None, meal_type=None, limit=None, offset=None):
        params = {"from": from_, "to": to, "mealType": meal_type, "limit": limit, "offset": offset}
        data = self.client.get_data("/nutri-audit/meals", params=params)
        return [Meal.from_api(m) for m in data.get("meals", [])]

    def get_meal(self, meal_id) -> Meal:
        return Meal.from_api(self.client.get_data(f"/nutri-audit/meals/{meal_id}", key="meal"))

    def update_meal(self, meal_id, changes: dict) -> Meal:
        data = self.client.patch_data(f"/nutri-audit/meals/{meal_id}", json=changes, key="meal")
        return Meal.from_api(data)

    def delete_meal(self, meal_id):
        self.client.delete(f"/nutri-audit/meals/{meal_id}")

    def today_meals(self) -> dict:
        """Returns today's meals with totals, limits and percent of each limit.

        The `meals` entry is converted to `Meal` objects. Missing totals or limits
        are filled in with zeros and `DAILY_LIMITS`.
        """
        data = self.client.get_data("/nutri-audit/meals/today")
        meals = [Meal.from_api(m) for m in data.get("meals", [])]
        totals = data.get("totals") or meal_totals(meals)
        limits = data.get("dailyLimits") or dict(DAILY_LIMITS)
        return {
            "date": data.get("date"),
            "meals": meals,
            "totals": totals,
            "daily_limits": limits,
            "percent_of_limit": data.get("percentOfLimit")
            or {n: percent_of_limit(n, totals.get(n, 0)) for n in NUTRIENTS},
        }

    def nutrient_summary(self, days=7) -> dict:
        return self.client.get_data("/nutri-audit/meals/summary", params={"days": days})

    def analyze_meal_image(self, image_bytes: bytes, mime_type="image/jpeg") -> dict:
        """Sends a meal photo for AI nutrient estimation.

        Args:
            image_bytes (bytes): The raw image.
            mime_type (str): The image's MIME type.

        Returns:
            dict: The analysis, with `foodItems`, `estimatedNutrients`, `warnings`,
                `recommendations` and `confidence`.
        """
        if mime_type not in SUPPORTED_IMAGE_TYPES:
            raise ValueError(f"Unsupported image type: {mime_type}")
        encoded = base64.b64encode(image_bytes).decode("ascii")
        logger.info("Analyzing meal image (%d bytes)", len(image_bytes))
        return self.client.post_data("/nutri-audit/analyze", json={"image": encoded, "mimeType": mime_type})

    def analyze_meal_from_url(self, image_url) -> dict:
        return self.client.post_data("/nutri-audit/analyze", json={"imageUrl": image_url})

    def analyze_food_by_text(self, food_name) -> dict:
        return self.client.post_data("/nutri-audit/analyze-text", json={"foodName": food_name.strip()})

    def search_cached_foods(self, query, limit=10):
        data = self.client.get_data("/nutri-audit/search", params={"q": query, "limit": limit})
        if isinstance(data, dict):
            return data.get("foods", [])
        return data or []

    def diet_reference(self) -> dict:
        return self.client.get_data("/nutri-audit/reference")

    def remaining_allowances(self) -> dict:
        """Returns how much of each daily limit is left today, never below zero."""
        today = self.today_meals()
        limits, totals = today["daily_limits"], today["totals"]
        return {n: max(0, limits.get(n, DAILY_LIMITS[n]) - totals.get(n, 0)) for n in NUTRIENTS}


def meal_totals(meals) -> dict:
    totals = {n: 0 for n in NUTRIENTS}
    totals["calories"] = 0
    for meal in meals:
        for nutrient in totals:
            totals[nutrient] += meal.nutrients.get(nutrient) or 0
    return totals


def percent_of_limit(nutrient, amount) -> int:
    return round(amount / DAILY_LIMITS[nutrient] * 100)


def is_over_limit(nutrient, amount) -> bool:
    return amount > DAILY_LIMITS[nutrient]


def limit_status(percent) -> str:
    """Classifies a percent of the daily limit as `ok`, `moderate`, `high` or `over`."""
    if percent >= 100:
        return "over"
    if percent >= 80:
        return "high"
    if percent >= 60:
        return "moderate"
    return "ok"


def format_nutrient(nutrient, amount) -> str:
    unit = NUTRIENT_UNITS.get(nutrient, "")
    if amount is None:
        return "-"
    if unit == "g":
        return f"{amount:.1f} {unit}"
    return f"{amount:,.0f} {unit}".strip()


def suggest_foods(query, limit=5):
    """Returns the common foods whose name contains `query`, case-insensitively."""
    query = (query or "").strip().lower()
    if not query:
        return []
    return [food for food in COMMON_FOODS if query in food["name"].lower()][:limit]
