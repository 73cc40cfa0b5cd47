from app.features.recommendations.knowledge import geography


def test_resolve_country_accepts_codes_names_and_aliases():
    assert geography.resolve_country("TR") == "TR"
    assert geography.resolve_country("tr") == "TR"
    assert geography.resolve_country("Turkey") == "TR"
    assert geography.resolve_country("Türkiye") == "TR"
    assert geography.resolve_country("TUR") == "TR"
    assert geography.resolve_country(" USA ") == "US"
    assert geography.resolve_country("Gaza") == "PS"


def test_unknown_inputs_return_empty_results():
    assert geography.resolve_country("Atlantis") is None
    assert geography.resolve_country(None) is None
    assert geography.regions_of("ZZ") == frozenset()
    assert geography.neighbors("Atlantis") == frozenset()
    assert geography.are_neighbors("ZZ", "TR") is False
    assert geography.same_region(None, "TR") is False


def test_country_can_belong_to_several_regions():
    regions = geography.regions_of("TR")

    assert "middle_east" in regions
    assert "caucasus" in regions


def test_same_region():
    assert geography.same_region("SY", "LB") is True
    assert geography.same_region("Syria", "Lebanon") is True
    assert geography.same_region("SY", "BR") is False


def test_neighbors_are_symmetric_even_when_listed_one_way():
    # Only HT -> DO is listed.
    assert "DO" not in geography.NEIGHBORING_COUNTRIES
    assert geography.are_neighbors("HT", "DO") is True
    assert geography.are_neighbors("DO", "HT") is True
    assert geography.neighbors("DO") == frozenset({"HT"})


def test_neighbors_are_not_transitive():
    # Greece borders Turkey and Turkey borders Syria, but Greece and Syria do not touch.
    assert geography.are_neighbors("GR", "TR") is True
    assert geography.are_neighbors("TR", "SY") is True
    assert geography.are_neighbors("GR", "SY") is False


def test_country_is_not_its_own_neighbor():
    assert geography.are_neighbors("TR", "TR") is False


def test_resolve_region():
    assert geography.resolve_region("Middle East") == "middle_east"
    assert geography.resolve_region("southeast-asia") == "southeast_asia"
    assert geography.resolve_region("Horn of Africa") == "horn_of_africa"
    assert geography.resolve_region("Narnia") is None
    assert geography.in_region("KE", "East Africa") is True


def test_countries_in_text_uses_word_boundaries_and_longest_names():
    text = "Relief teams in South Sudan and Kenya; join us to help."

    assert geography.countries_in_text(text) == ["SS", "KE"]
    assert geography.countries_in_text("Nigerian farmers") == ["NG"]
    assert geography.countries_in_text("A local food bank") == []


def test_common_word_country_names_need_capitals_in_text():
    assert geography.countries_in_text("Thanksgiving turkey dinners") == []
    assert geography.countries_in_text("Dinner on fine china") == []
    assert geography.countries_in_text("Relief teams in Turkey") == ["TR"]
    assert geography.countries_in_text("Schools in China") == ["CN"]


def test_first_names_are_not_read_as_countries_in_text():
    assert geography.countries_in_text("Founded by Michael Jordan") == []
    assert geography.countries_in_text("Chad Miller, executive director") == []
    assert geography.resolve_country("Jordan") == "JO"
    assert geography.resolve_country("Chad") == "TD"


def test_two_letter_codes_can_be_refused():
    assert geography.resolve_country("IL") == "IL"
    assert geography.resolve_country("IL", allow_iso2=False) is None
    assert geography.resolve_country("ISR", allow_iso2=False) == "IL"
    assert geography.resolve_country("Israel", allow_iso2=False) == "IL"
