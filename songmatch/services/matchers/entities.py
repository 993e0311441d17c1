"""Word-list entity extractor for contextual song boosts.

Finds cities, countries, temporal references, weather, relationships,
activities, emotions, colors and numbers in a message.  Songs whose tags
mention an extracted city, time, or weather word receive an additive boost.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

from songmatch.models.matching import ExtractedEntities
from songmatch.utils.logging import get_logger
from songmatch.utils.text_normalizer import contains_word

logger = get_logger(__name__)

ENTITY_LISTS: dict[str, tuple[str, ...]] = {
    "cities": (
        "new york", "los angeles", "chicago", "houston", "philadelphia", "phoenix",
        "san antonio", "san diego", "dallas", "san jose", "austin", "seattle",
        "denver", "boston", "detroit", "nashville", "memphis", "portland",
        "las vegas", "baltimore", "milwaukee", "atlanta", "kansas city", "miami",
        "oakland", "minneapolis", "tampa", "new orleans", "honolulu", "st. louis",
        "pittsburgh", "cincinnati", "newark",
        "london", "paris", "berlin", "madrid", "rome", "amsterdam", "vienna",
        "prague", "budapest", "warsaw", "stockholm", "oslo", "copenhagen",
        "helsinki", "dublin", "edinburgh", "glasgow", "manchester", "liverpool",
        "tokyo", "osaka", "kyoto", "seoul", "beijing", "shanghai", "hong kong",
        "singapore", "bangkok", "mumbai", "delhi", "sydney", "melbourne",
        "auckland", "toronto", "vancouver", "montreal", "mexico city",
        "buenos aires", "são paulo", "rio de janeiro", "cairo", "casablanca",
        "johannesburg", "cape town", "nairobi", "lagos",
    ),
    "countries": (
        "usa", "america", "united states", "canada", "mexico", "brazil", "argentina",
        "uk", "england", "britain", "scotland", "wales", "ireland", "france", "germany",
        "italy", "spain", "portugal", "netherlands", "belgium", "switzerland", "austria",
        "sweden", "norway", "denmark", "finland", "poland", "hungary", "russia",
        "china", "japan", "korea", "india", "thailand", "vietnam", "australia",
        "new zealand", "south africa", "egypt", "morocco", "nigeria",
    ),
    "temporal": (
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
        "weekend", "weekday", "weeknight", "workday",
        "morning", "afternoon", "evening", "night", "midnight", "noon", "dawn", "dusk",
        "sunrise", "sunset", "daybreak", "twilight",
        "spring", "summer", "autumn", "fall", "winter",
        "january", "february", "march", "april", "may", "june", "july", "august",
        "september", "october", "november", "december",
        "today", "yesterday", "tomorrow", "tonight",
    ),
    "weather": (
        "sunny", "cloudy", "rainy", "stormy", "snowy", "foggy", "misty", "hazy",
        "overcast", "drizzle", "shower", "thunderstorm", "lightning", "thunder",
        "rainbow", "wind", "windy", "breeze", "breezy", "hot", "warm", "cold",
        "freezing", "humid", "rain", "snow", "hail", "sleet", "ice", "frost",
        "storm", "hurricane", "tornado", "blizzard", "flood",
    ),
    "relationships": (
        "love", "lover", "boyfriend", "girlfriend", "husband", "wife", "partner",
        "relationship", "dating", "married", "single", "crush", "romance", "romantic",
        "breakup", "ex", "divorce", "together", "apart", "family", "mother", "father",
        "mom", "dad", "friend", "friends", "friendship", "heart", "heartbreak",
        "soulmate", "valentine", "wedding", "anniversary",
    ),
    "activities": (
        "driving", "walking", "running", "dancing", "singing", "working", "studying",
        "reading", "cooking", "sleeping", "shopping", "traveling", "vacation",
        "holiday", "party", "celebration", "concert", "club", "gym", "workout",
        "game", "race", "date", "school", "work", "office", "home", "car", "train",
    ),
    "emotions": (
        "happy", "sad", "angry", "excited", "nervous", "anxious", "worried", "scared",
        "confident", "proud", "jealous", "grateful", "hopeful", "disappointed",
        "frustrated", "confused", "surprised", "inspired", "motivated", "relaxed",
        "peaceful", "calm", "stressed", "overwhelmed", "tired", "bored", "passionate",
    ),
    "colors": (
        "red", "blue", "green", "yellow", "orange", "purple", "pink", "brown",
        "black", "white", "gray", "grey", "gold", "silver", "crimson", "scarlet",
        "violet", "indigo", "magenta", "rose", "amber",
    ),
}

_NUMBER_RE = re.compile(
    r"\b(\d+|one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve|"
    r"twenty|thirty|forty|fifty|hundred|thousand|million)\b",
    re.IGNORECASE,
)


class EntityConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    city_boost: float = Field(default=1.15, ge=0.0)
    temporal_boost: float = Field(default=1.1, ge=0.0)
    weather_boost: float = Field(default=1.05, ge=0.0)


class EntityExtractor:
    """Extracts contextual entities and turns tag overlaps into a boost."""

    def __init__(self, config: EntityConfig | None = None) -> None:
        self._config = config or EntityConfig()

    def extract_entities(self, message: str) -> ExtractedEntities:
        if not self._config.enabled:
            return ExtractedEntities()

        lowered = message.lower()
        found = {
            category: [term for term in terms if contains_word(lowered, term)]
            for category, terms in ENTITY_LISTS.items()
        }
        numbers = list(dict.fromkeys(m.lower() for m in _NUMBER_RE.findall(message)))
        entities = ExtractedEntities(**found, numbers=numbers)
        logger.debug("entities_extracted", total=entities.total)
        return entities

    def entity_boost(self, song_tags: list[str], entities: ExtractedEntities) -> float:
        """Sum of city/temporal/weather boosts whose entities appear in a song tag."""
        tags = [t.lower() for t in song_tags]
        boost = 0.0
        for values, amount in (
            (entities.cities, self._config.city_boost),
            (entities.temporal, self._config.temporal_boost),
            (entities.weather, self._config.weather_boost),
        ):
            if any(value in tag for tag in tags for value in values):
                boost += amount
        return boost

    def matched_terms(self, song_tags: list[str], entities: ExtractedEntities) -> list[str]:
        """Entities (any category) that appear inside one of *song_tags*."""
        tags = [t.lower() for t in song_tags]
        terms = [*entities.cities, *entities.temporal, *entities.weather]
        return [term for term in terms if any(term in tag for tag in tags)]
