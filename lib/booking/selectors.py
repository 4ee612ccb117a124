"""Locators for the hotel search home and results pages.

XPath for the form controls (they are keyed by data-selenium attributes),
CSS for the DayPicker calendar.
"""

DESTINATION_INPUT = "//div[@data-selenium='icon-box-child']//input[@id='textInput']"

# Suggestion strategies, tried in order
CITY_SUGGESTION = (
    "//li[@data-selenium='autosuggest-item'][@data-element-place-suggestion-type='City'][1]"
)
CITY_SUBTEXT_SUGGESTION = "//li[@data-selenium='autosuggest-item'][.//span[text()='City']][1]"
FIRST_SUGGESTION = "//li[@data-selenium='autosuggest-item'][1]"
SUGGESTION_STRATEGIES = (
    ("city type", CITY_SUGGESTION),
    ("city subtext", CITY_SUBTEXT_SUGGESTION),
    ("first suggestion", FIRST_SUGGESTION),
)

DATE_BUTTON = "//button[@data-selenium='date-display-btn']"
SEARCH_BUTTON = "//button[@data-selenium='searchButton']"
OCCUPANCY_BUTTON = "//button[@data-selenium='occupancy-btn']"

# Calendar
CALENDAR_CAPTION = ".DayPicker-Caption"
CALENDAR_NEXT = "[data-selenium='calendar-next-month-button'], .DayPicker-NavButton--next"
CALENDAR_PREVIOUS = "[data-selenium='calendar-previous-month-button'], .DayPicker-NavButton--prev"
DATE_CELL_ATTRIBUTE = "data-selenium-date"
DATE_CELLS = f"span[{DATE_CELL_ATTRIBUTE}]"


def date_span(token: str) -> str:
    return f"span[{DATE_CELL_ATTRIBUTE}='{token}']"


def date_cell(token: str) -> str:
    """Clickable day cell for a YYYY-MM-DD token."""
    return f"div[role='button']:has(span[{DATE_CELL_ATTRIBUTE}='{token}'])"


# Occupancy counters: (value, plus, minus) per counter
_OCCUPANCY_KEYS = {
    "rooms": ("room", "occupancyRooms"),
    "adults": ("adult", "occupancyAdults"),
    "children": ("children", "occupancyChildren"),
}


def counter_value(label: str) -> str:
    value_key, _ = _OCCUPANCY_KEYS[label]
    return f"//div[@data-selenium='desktop-occ-{value_key}-value']/p"


def counter_plus(label: str) -> str:
    _, group = _OCCUPANCY_KEYS[label]
    return f"//div[@data-selenium='{group}']//button[@data-selenium='plus']"


def counter_minus(label: str) -> str:
    _, group = _OCCUPANCY_KEYS[label]
    return f"//div[@data-selenium='{group}']//button[@data-selenium='minus']"


# Results page
RESULT_ITEMS = (
    "//div[@data-selenium='hotel-item'] | //div[contains(@class,'PropertyCard')]"
    " | //div[contains(@class,'property-card')] | //a[@data-testid='hotel-item']"
)
RESULT_PRICES = (
    "//span[@data-selenium='display-price'] | //span[@data-testid='hotel-original-price']"
)
RESULTS_LOADING = (
    "//div[contains(@class,'loading')] | //div[contains(@class,'spinner')]"
    " | //div[@data-testid='loading']"
)
SORT_BAR = "//div[@id='sort-bar'] | //div[@data-element-name='sort-bar-container']"

# Sort buttons keyed by words that may appear in the requested option
SORT_BUTTONS = (
    (("lowest price", "price"), "//button[@data-element-name='search-sort-price']"),
    (("best match", "recommended"), "//button[@data-element-name='search-sort-recommended']"),
    (("review", "rating"), "//button[@data-element-name='search-sort-guest-rating']"),
    (("distance",), "//button[@data-element-name='search-sort-distance-landmark']"),
    (("deal", "hot"), "//button[@data-element-name='search-sort-secret-deals']"),
)


def sort_button(option: str) -> str:
    """Sort button for an option like "Lowest price first"."""
    key = option.strip().lower()
    for words, selector in SORT_BUTTONS:
        if any(word in key for word in words):
            return selector
    return f"//button[contains(., '{option.strip()}')]"
