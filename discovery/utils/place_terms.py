"""English-Turkish place vocabulary used by the query normalizer.

Keys are lowercase surface forms as users type them; values are the
canonical tags sent to providers.
"""

DEFAULT_KEYWORD = "restaurant cafe pizza burger"

# Filler phrases stripped before tag detection. Longest first.
FILLER_PHRASES = [
    "i would like to", "i would like a", "i would like",
    "i want to", "i want a", "i want an", "i want",
    "i'm looking for", "im looking for", "looking for",
    "can you find", "show me", "please", "pls",
    "rica etsem", "bulur musun", "istiyorum", "isterim", "lütfen", "lutfen",
    "arıyorum", "ariyorum",
]

# Typos and concatenation errors seen in real prompts.
SUBSTITUTIONS = {
    "a eat": "eat",
    "a drink": "drink",
    "resturant": "restaurant",
    "restaraunt": "restaurant",
    "restorant": "restaurant",
    "restoran": "restaurant",
    "cofee": "coffee",
    "coffe": "coffee",
    "pizzza": "pizza",
    "hamburgerci": "burger",
    "burgerci": "burger",
    "kebapçı": "kebap",
    "kebapci": "kebap",
    "balıkçı": "balık",
    "balikci": "balık",
    "kahvealtı": "kahvaltı",
    "somethingto": "something to",
    "placeto": "place to",
}

# Surface form -> canonical tag
CATEGORY_TERMS = {
    # Food, generic
    "restaurant": "restaurant",
    "lokanta": "restaurant",
    "cafe": "cafe",
    "café": "cafe",
    "kafe": "cafe",
    "coffee": "cafe",
    "kahve": "cafe",
    "tea": "cafe",
    "çay": "cafe",
    "bakery": "bakery",
    "fırın": "bakery",
    "pastane": "bakery",
    "dessert": "dessert",
    "tatlı": "dessert",
    "breakfast": "breakfast",
    "brunch": "breakfast",
    "kahvaltı": "breakfast",
    "bar": "bar",
    "pub": "bar",
    "meyhane": "bar",
    # Cuisines
    "kebap": "kebab",
    "kebab": "kebab",
    "döner": "kebab",
    "doner": "kebab",
    "lahmacun": "turkish",
    "pide": "turkish",
    "türk": "turkish",
    "turk": "turkish",
    "turkish": "turkish",
    "ottoman": "turkish",
    "meze": "meze",
    "balık": "seafood",
    "balik": "seafood",
    "fish": "seafood",
    "seafood": "seafood",
    "pizza": "pizza",
    "burger": "burger",
    "hamburger": "burger",
    "sushi": "sushi",
    "chinese": "chinese",
    "çin": "chinese",
    "italian": "italian",
    "italyan": "italian",
    "mexican": "mexican",
    "meksika": "mexican",
    "indian": "indian",
    "hint": "indian",
    "japanese": "japanese",
    "japon": "japanese",
    "korean": "korean",
    "kore": "korean",
    "thai": "thai",
    "vietnamese": "vietnamese",
    "vegan": "vegan",
    "vejetaryen": "vegetarian",
    "vegetarian": "vegetarian",
    # Tourism / culture
    "museum": "museum",
    "müze": "museum",
    "muze": "museum",
    "historic": "historic",
    "historical": "historic",
    "tarihi": "historic",
    "tourist": "tourist_attraction",
    "sightseeing": "tourist_attraction",
    "attraction": "tourist_attraction",
    "gezilecek": "tourist_attraction",
    "görülecek": "tourist_attraction",
    "gorulecek": "tourist_attraction",
    "park": "park",
    "gallery": "art_gallery",
    "galeri": "art_gallery",
    "mosque": "mosque",
    "cami": "mosque",
    "palace": "historic",
    "saray": "historic",
}

# Tags the primary (commercial) provider covers poorly.
TOURISM_TAGS = frozenset({"museum", "historic", "tourist_attraction", "art_gallery", "mosque"})

DIETARY_TERMS = {
    "vegan": "vegan",
    "vegetarian": "vegetarian",
    "vejetaryen": "vegetarian",
    "halal": "halal",
    "helal": "halal",
    "gluten_free": "gluten free",
    "gluten free": "gluten free",
    "glutensiz": "gluten free",
}

# Phrase -> price tier (0 free .. 4 very expensive). Checked most specific first.
PRICE_TERMS = [
    ("fine dining", 4),
    ("luxury", 4),
    ("lüks", 4),
    ("luks", 4),
    ("expensive", 3),
    ("pahalı", 3),
    ("pahali", 3),
    ("orta fiyat", 2),
    ("moderate", 2),
    ("mid-range", 2),
    ("makul", 2),
    ("inexpensive", 1),
    ("cheap", 1),
    ("budget", 1),
    ("ucuz", 1),
    ("ekonomik", 1),
]

# Known district names; matched as substrings, returned title-cased.
LOCATION_NAMES = [
    "kadıköy", "kadikoy",
    "üsküdar", "uskudar",
    "taksim",
    "ümraniye", "umraniye",
    "beşiktaş", "besiktas",
    "şişli", "sisli",
    "beyoğlu", "beyoglu",
    "fatih",
    "sultanahmet",
    "karaköy", "karakoy",
    "bakırköy", "bakirkoy",
    "maltepe",
    "kartal",
    "pendik",
    "sarıyer", "sariyer",
]
