"""
Event templates and venue options (Placentia, CA area).

Exposed through EventCatalog so services receive configuration by injection
and tests can substitute their own templates.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel

from app.schemas.enums import EventType

class PriceRangeConfig(BaseModel):
    min: int
    max: int

class VenueConfig(BaseModel):
    name: str
    address: str
    lat: float
    lng: float
    photos: List[str] = []
    description: Optional[str] = None
    price_range: Optional[PriceRangeConfig] = None
    duration_minutes: Optional[int] = None

class EventTemplate(BaseModel):
    type: EventType
    category: str = "date_activity"
    title: str
    description: str
    venue: VenueConfig
    price_range: PriceRangeConfig
    duration_minutes: int
    age_range: PriceRangeConfig
    # People per group; even so pairs fill it exactly
    group_size: int

def _venue(name, address, lat, lng, photo, description, price, duration) -> VenueConfig:
    return VenueConfig(
        name=name,
        address=address,
        lat=lat,
        lng=lng,
        photos=[photo],
        description=description,
        price_range=PriceRangeConfig(min=price[0], max=price[1]),
        duration_minutes=duration,
    )

VENUES: Dict[str, VenueConfig] = {
    "COFFEE_DATE": _venue(
        "Hidden House Coffee", "511 W Chapman Ave, Orange, CA 92866", 33.7877, -117.8551,
        "https://images.unsplash.com/photo-1504754524776-8f4f37790ca0?w=800",
        "Warm industrial cafe with rotating single-origin coffees and pastries.", (6, 15), 90,
    ),
    "COFFEE_DATE_TWO": _venue(
        "Portola Coffee Lab", "3313 Hyland Ave, Costa Mesa, CA 92626", 33.6969, -117.9187,
        "https://images.unsplash.com/photo-1481391319762-47c0dd58b6af?w=800",
        "Award-winning roaster with pour-over bar and airy seating.", (7, 18), 90,
    ),
    "COFFEE_DATE_THREE": _venue(
        "Contra Coffee & Tea", "115 N Harbor Blvd, Fullerton, CA 92832", 33.8729, -117.9242,
        "https://images.unsplash.com/photo-1495474472287-4d71bcdd2085?w=800",
        "Nitro tea and coffee bar with cozy community tables.", (6, 14), 90,
    ),
    "COCKTAIL_BAR": _venue(
        "The Blind Rabbit", "440 S Anaheim Blvd, Anaheim, CA 92805", 33.832, -117.912,
        "https://images.unsplash.com/photo-1514361892635-6e122620e884?w=800",
        "Speakeasy-style bar with craft cocktails and intimate booths.", (20, 45), 120,
    ),
    "COCKTAIL_BAR_TWO": _venue(
        "Strong Water Anaheim", "270 S Clementine St, Anaheim, CA 92805", 33.8332, -117.9131,
        "https://images.unsplash.com/photo-1546171753-97d7676f45c1?w=800",
        "Tiki-inspired hideaway with tropical cocktails and small bites.", (18, 40), 120,
    ),
    "COCKTAIL_BAR_THREE": _venue(
        "Rembrandt's Kitchen & Bar", "909 E Yorba Linda Blvd, Placentia, CA 92870", 33.8896, -117.8448,
        "https://images.unsplash.com/photo-1527169402691-feff5539e52c?w=800",
        "Neighborhood bar with live music nights and patio seating.", (16, 38), 120,
    ),
    "DINNER_SPOT": _venue(
        "The Cellar Restaurant", "305 N Harbor Blvd, Fullerton, CA 92832", 33.8725, -117.9243,
        "https://images.unsplash.com/photo-1517248135467-4c7edcad34c4?w=800",
        "Historic cellar serving multi-course fine dining with wine pairings.", (65, 120), 180,
    ),
    "DINNER_SPOT_TWO": _venue(
        "Summit House", "2000 E Bastanchury Rd, Fullerton, CA 92835", 33.8915, -117.901,
        "https://images.unsplash.com/photo-1559339352-11d035aa65de?w=800",
        "Hilltop steakhouse with sunset views and classic California fare.", (55, 110), 150,
    ),
    "DINNER_SPOT_THREE": _venue(
        "The Ranch Restaurant", "1025 E Ball Rd, Anaheim, CA 92805", 33.8179, -117.8987,
        "https://images.unsplash.com/photo-1555992336-cbf3b55a620a?w=800",
        "Farm-to-table dining with seasonal tasting menus and live music.", (70, 130), 180,
    ),
    "TRI_CITY_TENNIS": _venue(
        "Tri-City Park Tennis Courts", "2301 N Kraemer Blvd, Placentia, CA 92870", 33.8789, -117.8547,
        "https://images.unsplash.com/photo-1554068865-24cecd4e34b8?w=800",
        "Six lighted courts surrounded by lake views and park amenities.", (0, 10), 150,
    ),
    "TENNIS_TWO": _venue(
        "Craig Regional Park Courts", "3300 N State College Blvd, Fullerton, CA 92835", 33.9035, -117.8888,
        "https://images.unsplash.com/photo-1542144582-1ba00456b5d5?w=800",
        "Shaded courts with nearby picnic areas for post-match hangs.", (0, 10), 150,
    ),
    "TENNIS_THREE": _venue(
        "Anaheim Tennis Center", "975 S State College Blvd, Anaheim, CA 92806", 33.8238, -117.8893,
        "https://images.unsplash.com/photo-1516035069371-29a1b244cc32?w=800",
        "Pro shop, ball machine rentals, and coffee bar on site.", (5, 20), 150,
    ),
    "DOG_PARK": _venue(
        "Yorba Linda Dog Park", "19001 Casa Loma Ave, Yorba Linda, CA 92886", 33.8814, -117.8133,
        "https://images.unsplash.com/photo-1525253086316-d0c936c814f8?w=800",
        "Three-acre off-leash park with separate areas for small and large dogs.", (0, 5), 90,
    ),
    "DOG_PARK_TWO": _venue(
        "Fullerton Pooch Park", "201 S Basque Ave, Fullerton, CA 92833", 33.8707, -117.956,
        "https://images.unsplash.com/photo-1522771930-78848d9293e8?w=800",
        "Shaded park with agility equipment and weekly social hours.", (0, 5), 90,
    ),
    "DOG_PARK_THREE": _venue(
        "La Palma Dog Park", "5062 La Palma Ave, La Palma, CA 90623", 33.8466, -118.0456,
        "https://images.unsplash.com/photo-1507146426996-ef05306b995a?w=800",
        "Community-run dog park with fresh water stations and weekend meetups.", (0, 5), 90,
    ),
    "HIKING_PARK": _venue(
        "Carbon Canyon Regional Park", "4442 Carbon Canyon Rd, Brea, CA 92823", 33.9123, -117.8456,
        "https://images.unsplash.com/photo-1551632811-561732d1e306?w=800",
        "Redwood grove trails with gentle elevation and post-hike picnic spots.", (0, 10), 150,
    ),
    "HIKING_PARK_TWO": _venue(
        "Peters Canyon Regional Park", "8548 Canyon View Ave, Orange, CA 92869", 33.787, -117.7406,
        "https://images.unsplash.com/photo-1500530855697-b586d89ba3ee?w=800",
        "Wildlife-rich canyon with lake views and sunrise-friendly trails.", (0, 12), 150,
    ),
    "HIKING_PARK_THREE": _venue(
        "Chino Hills State Park", "4721 Sapphire Rd, Chino Hills, CA 91709", 33.9502, -117.7115,
        "https://images.unsplash.com/photo-1542291026-7eec264c27ff?w=800",
        "Rolling hills, wildflowers, and multiple trail difficulty options.", (0, 10), 180,
    ),
}

def _template(event_type, title, description, venue_key, price, duration, ages, group_size) -> EventTemplate:
    return EventTemplate(
        type=event_type,
        title=title,
        description=description,
        venue=VENUES[venue_key],
        price_range=PriceRangeConfig(min=price[0], max=price[1]),
        duration_minutes=duration,
        age_range=PriceRangeConfig(min=ages[0], max=ages[1]),
        group_size=group_size,
    )

EVENT_TEMPLATES: List[EventTemplate] = [
    _template(
        EventType.COFFEE, "Cozy Coffee Meetup",
        "Meet for artisan coffee and light pastries in a relaxed lounge setting.",
        "COFFEE_DATE", (8, 18), 90, (21, 45), 4,
    ),
    _template(
        EventType.BAR, "Craft Cocktail Social",
        "Gather in a speakeasy-style bar for signature cocktails and great conversation.",
        "COCKTAIL_BAR", (25, 45), 120, (23, 45), 4,
    ),
    _template(
        EventType.TENNIS, "Weekend Tennis Social",
        "Saturday morning doubles tennis followed by smoothies and post-match chats.",
        "TRI_CITY_TENNIS", (15, 25), 150, (21, 50), 6,
    ),
    _template(
        EventType.DOG_WALKING, "Dog Walk & Park Social",
        "Bring your pup (or borrow one) for a relaxed walk and park hangout.",
        "DOG_PARK", (0, 10), 90, (21, 50), 4,
    ),
    _template(
        EventType.HIKING, "Canyon Sunrise Hike",
        "Early morning hike through scenic trails followed by optional coffee nearby.",
        "HIKING_PARK", (0, 15), 150, (23, 55), 4,
    ),
    _template(
        EventType.RESTAURANT, "Chef's Table Dinner",
        "Intimate multi-course dinner with curated pairings in a historic cellar.",
        "DINNER_SPOT", (60, 110), 180, (25, 55), 4,
    ),
]

EVENT_VENUE_OPTIONS: Dict[EventType, List[VenueConfig]] = {
    EventType.COFFEE: [VENUES["COFFEE_DATE"], VENUES["COFFEE_DATE_TWO"], VENUES["COFFEE_DATE_THREE"]],
    EventType.BAR: [VENUES["COCKTAIL_BAR"], VENUES["COCKTAIL_BAR_TWO"], VENUES["COCKTAIL_BAR_THREE"]],
    EventType.RESTAURANT: [VENUES["DINNER_SPOT"], VENUES["DINNER_SPOT_TWO"], VENUES["DINNER_SPOT_THREE"]],
    EventType.TENNIS: [VENUES["TRI_CITY_TENNIS"], VENUES["TENNIS_TWO"], VENUES["TENNIS_THREE"]],
    EventType.DOG_WALKING: [VENUES["DOG_PARK"], VENUES["DOG_PARK_TWO"], VENUES["DOG_PARK_THREE"]],
    EventType.HIKING: [VENUES["HIKING_PARK"], VENUES["HIKING_PARK_TWO"], VENUES["HIKING_PARK_THREE"]],
}

class EventCatalog:
    """Read-only provider of event templates and venue lists"""

    def __init__(
        self,
        templates: Optional[List[EventTemplate]] = None,
        venue_options: Optional[Dict[EventType, List[VenueConfig]]] = None,
    ):
        self.templates = list(EVENT_TEMPLATES if templates is None else templates)
        self.venue_options = dict(EVENT_VENUE_OPTIONS if venue_options is None else venue_options)

    def get_event_templates_by_type(self, event_type: EventType) -> List[EventTemplate]:
        return [template for template in self.templates if template.type == event_type]

    def get_venue_options_for_type(self, event_type: EventType) -> List[VenueConfig]:
        return list(self.venue_options.get(event_type, []))

    def fallback_template(self) -> EventTemplate:
        return self.templates[0] if self.templates else EVENT_TEMPLATES[0]

    def select_template(self, event_type: EventType) -> EventTemplate:
        templates = self.get_event_templates_by_type(event_type)
        return templates[0] if templates else self.fallback_template()

    def pairs_per_event(self, event_type: EventType) -> int:
        return max(1, self.select_template(event_type).group_size // 2)

default_catalog = EventCatalog()
