"""
Geographic knowledge base.

Static region membership and border adjacency keyed by ISO 3166-1 alpha-2
codes, plus name resolution for the free-text locations that come out of
article classification. Every lookup is pure; unknown inputs return empty
results instead of raising.
"""

from __future__ import annotations

import re
from functools import lru_cache

# A country may sit in more than one region (geographic plus a historical or
# economic grouping), so membership is many-to-many.
REGION_MAP: dict[str, frozenset[str]] = {
    # Africa
    "north_africa": frozenset({"DZ", "EG", "LY", "MA", "TN", "SD", "SS"}),
    "west_africa": frozenset(
        {"BJ", "BF", "CV", "CI", "GM", "GH", "GN", "GW", "LR", "ML", "MR", "NE", "NG", "SN", "SL", "TG"}
    ),
    "east_africa": frozenset(
        {"BI", "KM", "DJ", "ER", "ET", "KE", "MG", "MW", "MU", "MZ", "RW", "SC", "SO", "TZ", "UG", "ZM", "ZW"}
    ),
    "central_africa": frozenset({"AO", "CM", "CF", "TD", "CG", "CD", "GQ", "GA", "ST"}),
    "southern_africa": frozenset({"BW", "LS", "NA", "ZA", "SZ"}),
    "horn_of_africa": frozenset({"DJ", "ER", "ET", "SO"}),
    "sahel": frozenset({"BF", "ML", "MR", "NE", "TD", "SD", "SN"}),
    # Asia
    "middle_east": frozenset(
        {"BH", "IQ", "IR", "IL", "JO", "KW", "LB", "OM", "PS", "QA", "SA", "SY", "TR", "AE", "YE", "EG"}
    ),
    "levant": frozenset({"IL", "JO", "LB", "PS", "SY"}),
    "caucasus": frozenset({"AM", "AZ", "GE", "TR"}),
    "south_asia": frozenset({"AF", "BD", "BT", "IN", "MV", "NP", "PK", "LK"}),
    "southeast_asia": frozenset({"BN", "KH", "ID", "LA", "MY", "MM", "PH", "SG", "TH", "TL", "VN"}),
    "east_asia": frozenset({"CN", "HK", "JP", "KP", "KR", "MN", "MO", "TW"}),
    "central_asia": frozenset({"KZ", "KG", "TJ", "TM", "UZ"}),
    # Europe
    "western_europe": frozenset({"AT", "BE", "FR", "DE", "LI", "LU", "MC", "NL", "CH"}),
    "northern_europe": frozenset({"DK", "EE", "FI", "IS", "IE", "LV", "LT", "NO", "SE", "GB"}),
    "southern_europe": frozenset(
        {"AL", "AD", "BA", "HR", "CY", "GR", "IT", "XK", "MT", "ME", "MK", "PT", "SM", "RS", "SI", "ES", "VA"}
    ),
    "eastern_europe": frozenset({"BY", "BG", "CZ", "HU", "MD", "PL", "RO", "RU", "SK", "UA"}),
    "balkans": frozenset({"AL", "BA", "BG", "HR", "GR", "XK", "ME", "MK", "RO", "RS", "SI"}),
    # Americas
    "north_america": frozenset({"CA", "MX", "US"}),
    "central_america": frozenset({"BZ", "CR", "SV", "GT", "HN", "NI", "PA"}),
    "caribbean": frozenset(
        {"AG", "BS", "BB", "CU", "DM", "DO", "GD", "HT", "JM", "KN", "LC", "VC", "TT", "PR"}
    ),
    "south_america": frozenset({"AR", "BO", "BR", "CL", "CO", "EC", "GY", "PY", "PE", "SR", "UY", "VE"}),
    "latin_america": frozenset(
        {"AR", "BO", "BR", "CL", "CO", "EC", "PY", "PE", "UY", "VE", "MX", "GT", "HN", "SV", "NI", "CR", "PA", "CU", "DO", "HT"}
    ),
    # Oceania
    "oceania": frozenset({"AU", "FJ", "KI", "MH", "FM", "NR", "NZ", "PW", "PG", "WS", "SB", "TO", "TV", "VU"}),
}

# Direct land or maritime neighbors only. Stored one-directional; lookups
# check both directions.
NEIGHBORING_COUNTRIES: dict[str, frozenset[str]] = {
    # Africa
    "DZ": frozenset({"TN", "LY", "NE", "ML", "MR", "MA"}),
    "EG": frozenset({"LY", "SD", "IL", "PS"}),
    "LY": frozenset({"DZ", "TN", "EG", "SD", "TD", "NE"}),
    "MA": frozenset({"DZ", "ES"}),
    "TN": frozenset({"DZ", "LY"}),
    "SD": frozenset({"EG", "LY", "TD", "CF", "SS", "ET", "ER"}),
    "SS": frozenset({"SD", "ET", "KE", "UG", "CD", "CF"}),
    "ET": frozenset({"ER", "DJ", "SO", "KE", "SS", "SD"}),
    "KE": frozenset({"ET", "SO", "SS", "UG", "TZ"}),
    "SO": frozenset({"DJ", "ET", "KE"}),
    "UG": frozenset({"SS", "KE", "TZ", "RW", "CD"}),
    "TZ": frozenset({"KE", "UG", "RW", "BI", "CD", "ZM", "MW", "MZ"}),
    "NG": frozenset({"BJ", "NE", "TD", "CM"}),
    "CD": frozenset({"CG", "CF", "SS", "UG", "RW", "BI", "TZ", "ZM", "AO"}),
    "ZA": frozenset({"NA", "BW", "ZW", "MZ", "SZ", "LS"}),
    # Middle East
    "TR": frozenset({"GR", "BG", "GE", "AM", "AZ", "IR", "IQ", "SY"}),
    "SY": frozenset({"TR", "IQ", "JO", "IL", "LB"}),
    "IQ": frozenset({"TR", "SY", "JO", "SA", "KW", "IR"}),
    "IR": frozenset({"TR", "IQ", "KW", "SA", "OM", "AE", "AF", "PK", "TM", "AZ", "AM"}),
    "SA": frozenset({"JO", "IQ", "KW", "QA", "AE", "OM", "YE"}),
    "YE": frozenset({"SA", "OM"}),
    "IL": frozenset({"LB", "SY", "JO", "EG", "PS"}),
    "JO": frozenset({"SY", "IQ", "SA", "IL", "PS"}),
    "LB": frozenset({"SY", "IL"}),
    # South Asia
    "AF": frozenset({"IR", "PK", "CN", "TJ", "UZ", "TM"}),
    "PK": frozenset({"AF", "IR", "IN", "CN"}),
    "IN": frozenset({"PK", "CN", "NP", "BT", "MM", "BD", "LK"}),
    "BD": frozenset({"IN", "MM"}),
    "NP": frozenset({"CN", "IN"}),
    "BT": frozenset({"CN", "IN"}),
    # Southeast Asia
    "MM": frozenset({"BD", "IN", "CN", "LA", "TH"}),
    "TH": frozenset({"MM", "LA", "KH", "MY"}),
    "LA": frozenset({"CN", "MM", "TH", "KH", "VN"}),
    "VN": frozenset({"CN", "LA", "KH"}),
    "KH": frozenset({"TH", "LA", "VN"}),
    "MY": frozenset({"TH", "BN", "ID"}),
    "ID": frozenset({"MY", "PG", "TL"}),
    "PH": frozenset({"TW", "MY"}),
    # East Asia
    "CN": frozenset(
        {"KP", "KR", "MN", "RU", "KZ", "KG", "TJ", "AF", "PK", "IN", "NP", "BT", "MM", "LA", "VN"}
    ),
    "KP": frozenset({"CN", "KR", "RU"}),
    "KR": frozenset({"KP", "JP"}),
    "MN": frozenset({"CN", "RU"}),
    # Europe
    "FR": frozenset({"ES", "AD", "BE", "LU", "DE", "CH", "IT", "MC"}),
    "DE": frozenset({"DK", "PL", "CZ", "AT", "CH", "FR", "LU", "BE", "NL"}),
    "IT": frozenset({"FR", "CH", "AT", "SI", "SM", "VA"}),
    "ES": frozenset({"PT", "FR", "AD"}),
    "PT": frozenset({"ES"}),
    "PL": frozenset({"DE", "CZ", "SK", "UA", "BY", "LT", "RU"}),
    "UA": frozenset({"PL", "SK", "HU", "RO", "MD", "RU", "BY"}),
    "RU": frozenset({"NO", "FI", "EE", "LV", "LT", "PL", "BY", "UA", "GE", "AZ", "KZ", "CN", "MN", "KP"}),
    "GR": frozenset({"AL", "MK", "BG", "TR"}),
    # Americas
    "US": frozenset({"CA", "MX"}),
    "CA": frozenset({"US"}),
    "MX": frozenset({"US", "GT", "BZ"}),
    "GT": frozenset({"MX", "BZ", "HN", "SV"}),
    "BZ": frozenset({"MX", "GT"}),
    "HN": frozenset({"GT", "SV", "NI"}),
    "SV": frozenset({"GT", "HN"}),
    "NI": frozenset({"HN", "CR"}),
    "CR": frozenset({"NI", "PA"}),
    "PA": frozenset({"CR", "CO"}),
    "CO": frozenset({"PA", "VE", "BR", "PE", "EC"}),
    "VE": frozenset({"CO", "BR", "GY"}),
    "BR": frozenset({"VE", "GY", "SR", "GF", "UY", "AR", "PY", "BO", "PE", "CO"}),
    "AR": frozenset({"CL", "BO", "PY", "BR", "UY"}),
    "CL": frozenset({"PE", "BO", "AR"}),
    "PE": frozenset({"EC", "CO", "BR", "BO", "CL"}),
    "BO": frozenset({"PE", "BR", "PY", "AR", "CL"}),
    "PY": frozenset({"BO", "BR", "AR"}),
    "UY": frozenset({"BR", "AR"}),
    "EC": frozenset({"CO", "PE"}),
    "HT": frozenset({"DO"}),
    # Oceania
    "AU": frozenset({"ID", "TL", "PG"}),
    "PG": frozenset({"ID", "AU"}),
    "NZ": frozenset(),
}

# Lowercase names, demonyms and common spellings -> ISO2.
COUNTRY_ALIASES: dict[str, str] = {
    "afghanistan": "AF",
    "afghan": "AF",
    "albania": "AL",
    "algeria": "DZ",
    "argentina": "AR",
    "armenia": "AM",
    "australia": "AU",
    "australian": "AU",
    "austria": "AT",
    "azerbaijan": "AZ",
    "bangladesh": "BD",
    "bangladeshi": "BD",
    "belgium": "BE",
    "bolivia": "BO",
    "bosnia": "BA",
    "brazil": "BR",
    "brazilian": "BR",
    "bulgaria": "BG",
    "burkina faso": "BF",
    "burma": "MM",
    "myanmar": "MM",
    "cambodia": "KH",
    "cameroon": "CM",
    "canada": "CA",
    "canadian": "CA",
    "central african republic": "CF",
    "chad": "TD",
    "chile": "CL",
    "china": "CN",
    "colombia": "CO",
    "colombian": "CO",
    "congo": "CD",
    "democratic republic of the congo": "CD",
    "drc": "CD",
    "costa rica": "CR",
    "croatia": "HR",
    "cuba": "CU",
    "cyprus": "CY",
    "czech republic": "CZ",
    "czechia": "CZ",
    "denmark": "DK",
    "dominican republic": "DO",
    "ecuador": "EC",
    "egypt": "EG",
    "egyptian": "EG",
    "el salvador": "SV",
    "salvadoran": "SV",
    "eritrea": "ER",
    "ethiopia": "ET",
    "ethiopian": "ET",
    "fiji": "FJ",
    "finland": "FI",
    "france": "FR",
    "gaza": "PS",
    "west bank": "PS",
    "palestine": "PS",
    "palestinian": "PS",
    "germany": "DE",
    "ghana": "GH",
    "greece": "GR",
    "guatemala": "GT",
    "guatemalan": "GT",
    "haiti": "HT",
    "haitian": "HT",
    "honduras": "HN",
    "honduran": "HN",
    "hungary": "HU",
    "india": "IN",
    "indonesia": "ID",
    "indonesian": "ID",
    "iran": "IR",
    "iranian": "IR",
    "iraq": "IQ",
    "iraqi": "IQ",
    "ireland": "IE",
    "israel": "IL",
    "israeli": "IL",
    "italy": "IT",
    "jamaica": "JM",
    "japan": "JP",
    "jordan": "JO",
    "kazakhstan": "KZ",
    "kenya": "KE",
    "kenyan": "KE",
    "north korea": "KP",
    "south korea": "KR",
    "korea": "KR",
    "kuwait": "KW",
    "laos": "LA",
    "lebanon": "LB",
    "lebanese": "LB",
    "libya": "LY",
    "libyan": "LY",
    "madagascar": "MG",
    "malawi": "MW",
    "malaysia": "MY",
    "mali": "ML",
    "mexico": "MX",
    "mexican": "MX",
    "moldova": "MD",
    "mongolia": "MN",
    "morocco": "MA",
    "moroccan": "MA",
    "mozambique": "MZ",
    "nepal": "NP",
    "nepalese": "NP",
    "netherlands": "NL",
    "new zealand": "NZ",
    "nicaragua": "NI",
    "nicaraguan": "NI",
    "niger": "NE",
    "nigeria": "NG",
    "nigerian": "NG",
    "norway": "NO",
    "oman": "OM",
    "pakistan": "PK",
    "pakistani": "PK",
    "panama": "PA",
    "papua new guinea": "PG",
    "paraguay": "PY",
    "peru": "PE",
    "philippines": "PH",
    "filipino": "PH",
    "poland": "PL",
    "portugal": "PT",
    "puerto rico": "PR",
    "qatar": "QA",
    "romania": "RO",
    "russia": "RU",
    "rwanda": "RW",
    "saudi arabia": "SA",
    "senegal": "SN",
    "serbia": "RS",
    "sierra leone": "SL",
    "somalia": "SO",
    "somali": "SO",
    "somalian": "SO",
    "south africa": "ZA",
    "south sudan": "SS",
    "spain": "ES",
    "sri lanka": "LK",
    "sudan": "SD",
    "sudanese": "SD",
    "sweden": "SE",
    "switzerland": "CH",
    "syria": "SY",
    "syrian": "SY",
    "taiwan": "TW",
    "tajikistan": "TJ",
    "tanzania": "TZ",
    "tanzanian": "TZ",
    "thailand": "TH",
    "tunisia": "TN",
    "turkey": "TR",
    "türkiye": "TR",
    "turkiye": "TR",
    "uganda": "UG",
    "ugandan": "UG",
    "ukraine": "UA",
    "ukrainian": "UA",
    "united arab emirates": "AE",
    "uae": "AE",
    "united kingdom": "GB",
    "uk": "GB",
    "great britain": "GB",
    "britain": "GB",
    "england": "GB",
    "scotland": "GB",
    "wales": "GB",
    "united states": "US",
    "united states of america": "US",
    "usa": "US",
    "u.s.": "US",
    "u.s.a.": "US",
    "uruguay": "UY",
    "uzbekistan": "UZ",
    "venezuela": "VE",
    "venezuelan": "VE",
    "vietnam": "VN",
    "vietnamese": "VN",
    "yemen": "YE",
    "yemeni": "YE",
    "zambia": "ZM",
    "zimbabwe": "ZW",
}

# Three-letter codes that show up in older directory records.
ISO3_TO_ISO2: dict[str, str] = {
    "USA": "US",
    "CAN": "CA",
    "GBR": "GB",
    "AUS": "AU",
    "IND": "IN",
    "KEN": "KE",
    "UGA": "UG",
    "TZA": "TZ",
    "ETH": "ET",
    "SOM": "SO",
    "SDN": "SD",
    "SSD": "SS",
    "YEM": "YE",
    "SYR": "SY",
    "IRQ": "IQ",
    "AFG": "AF",
    "PAK": "PK",
    "BGD": "BD",
    "NPL": "NP",
    "HTI": "HT",
    "VEN": "VE",
    "COL": "CO",
    "BRA": "BR",
    "MEX": "MX",
    "GTM": "GT",
    "HND": "HN",
    "SLV": "SV",
    "NIC": "NI",
    "TUR": "TR",
    "GRC": "GR",
    "UKR": "UA",
    "ISR": "IL",
    "PSE": "PS",
    "LBN": "LB",
    "JOR": "JO",
    "CHN": "CN",
    "PHL": "PH",
    "NGA": "NG",
}

REGION_ALIASES: dict[str, str] = {
    "north africa": "north_africa",
    "west africa": "west_africa",
    "east africa": "east_africa",
    "central africa": "central_africa",
    "southern africa": "southern_africa",
    "horn of africa": "horn_of_africa",
    "sahel": "sahel",
    "middle east": "middle_east",
    "levant": "levant",
    "caucasus": "caucasus",
    "south asia": "south_asia",
    "southeast asia": "southeast_asia",
    "east asia": "east_asia",
    "central asia": "central_asia",
    "western europe": "western_europe",
    "northern europe": "northern_europe",
    "southern europe": "southern_europe",
    "eastern europe": "eastern_europe",
    "balkans": "balkans",
    "north america": "north_america",
    "central america": "central_america",
    "caribbean": "caribbean",
    "south america": "south_america",
    "latin america": "latin_america",
    "oceania": "oceania",
    "pacific islands": "oceania",
}

# US directory addresses end in a state, which often collides with an ISO2
# code (IL, CA, GA, PA, ...).
US_STATE_CODES = frozenset(
    {
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "DC", "FL", "GA", "HI", "ID", "IL",
        "IN", "IA", "KS", "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MS", "MO", "MT", "NE",
        "NV", "NH", "NJ", "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC", "SD",
        "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    }
)

US_STATE_NAMES = frozenset(
    {
        "alabama", "alaska", "arizona", "arkansas", "california", "colorado", "connecticut",
        "delaware", "district of columbia", "florida", "georgia", "hawaii", "idaho",
        "illinois", "indiana", "iowa", "kansas", "kentucky", "louisiana", "maine",
        "maryland", "massachusetts", "michigan", "minnesota", "mississippi", "missouri",
        "montana", "nebraska", "nevada", "new hampshire", "new jersey", "new mexico",
        "new york", "north carolina", "north dakota", "ohio", "oklahoma", "oregon",
        "pennsylvania", "rhode island", "south carolina", "south dakota", "tennessee",
        "texas", "utah", "vermont", "virginia", "washington", "west virginia",
        "wisconsin", "wyoming",
    }
)

# Country names that are also common first names; never matched in free text.
TEXT_EXCLUDED_ALIASES = frozenset({"chad", "jordan"})

# Country names that are also common nouns; matched in free text only when capitalised.
CAPITALIZED_ONLY_ALIASES = frozenset({"turkey", "china"})


def _known_codes() -> frozenset[str]:
    codes: set[str] = set(NEIGHBORING_COUNTRIES)
    for members in REGION_MAP.values():
        codes.update(members)
    for neighbors_of in NEIGHBORING_COUNTRIES.values():
        codes.update(neighbors_of)
    return frozenset(codes)


KNOWN_COUNTRY_CODES = _known_codes()


def _normalize(value: str | None) -> str:
    return (value or "").strip()


def resolve_country(value: str | None, allow_iso2: bool = True) -> str | None:
    """
    Resolve an ISO2 code, ISO3 code, country name or demonym to ISO2.

    With ``allow_iso2=False`` bare two-letter codes are not accepted, for
    inputs such as address tails where they are usually state codes.
    Returns None when the value does not name a known country.
    """
    raw = _normalize(value)
    if not raw:
        return None

    upper = raw.upper()
    if len(upper) == 2 and allow_iso2 and upper in KNOWN_COUNTRY_CODES:
        return upper
    if len(upper) == 3 and upper in ISO3_TO_ISO2:
        return ISO3_TO_ISO2[upper]

    return COUNTRY_ALIASES.get(raw.lower())


def resolve_region(value: str | None) -> str | None:
    """Resolve a region id or free-text region name to a region id."""
    raw = _normalize(value).lower()
    if not raw:
        return None
    slug = re.sub(r"[\s\-]+", "_", raw)
    if slug in REGION_MAP:
        return slug
    return REGION_ALIASES.get(raw)


def regions_of(country: str | None) -> frozenset[str]:
    code = resolve_country(country)
    if not code:
        return frozenset()
    return frozenset(region for region, members in REGION_MAP.items() if code in members)


def same_region(a: str | None, b: str | None) -> bool:
    return bool(regions_of(a) & regions_of(b))


def neighbors(country: str | None) -> frozenset[str]:
    """Direct neighbors of a country, listed in either direction."""
    code = resolve_country(country)
    if not code:
        return frozenset()
    direct = set(NEIGHBORING_COUNTRIES.get(code, frozenset()))
    direct.update(other for other, listed in NEIGHBORING_COUNTRIES.items() if code in listed)
    direct.discard(code)
    return frozenset(direct)


def are_neighbors(a: str | None, b: str | None) -> bool:
    code_a = resolve_country(a)
    code_b = resolve_country(b)
    if not code_a or not code_b or code_a == code_b:
        return False
    return code_b in NEIGHBORING_COUNTRIES.get(code_a, frozenset()) or code_a in NEIGHBORING_COUNTRIES.get(
        code_b, frozenset()
    )


def in_region(country: str | None, region: str | None) -> bool:
    region_id = resolve_region(region)
    if not region_id:
        return False
    return region_id in regions_of(country)


@lru_cache(maxsize=1)
def _alias_pattern() -> re.Pattern[str]:
    # Longest aliases first so "south sudan" wins over "sudan".
    names = sorted(
        (name for name in COUNTRY_ALIASES if name not in TEXT_EXCLUDED_ALIASES),
        key=len,
        reverse=True,
    )
    alternation = "|".join(re.escape(name) for name in names)
    return re.compile(rf"(?<![\w.])({alternation})(?![\w])", re.IGNORECASE)


def countries_in_text(text: str | None) -> list[str]:
    """
    Find country mentions in free text using word-boundary matching.

    Returns ISO2 codes in order of first appearance, without duplicates.
    Names that double as common words ("turkey dinners") count only when
    capitalised, and names that double as first names are skipped.
    """
    if not text:
        return []
    found: list[str] = []
    for match in _alias_pattern().finditer(text):
        matched = match.group(1)
        alias = matched.lower()
        if alias in CAPITALIZED_ONLY_ALIASES and not matched[0].isupper():
            continue
        code = COUNTRY_ALIASES[alias]
        if code not in found:
            found.append(code)
    return found
