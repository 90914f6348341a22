from conftest import NARRATIVE
from services.extraction import narrative
from services.extraction.narrative import VisionResult, find_section


def test_find_section_stops_at_next_heading():
    section = find_section(NARRATIVE, "era")
    assert "1990s vintage" in section
    assert "DETAILED FEATURES" not in section
    assert find_section("No headings here.", "era") is None


def test_find_section_accepts_markdown_headings():
    text = "## **3. Era & Dating**\n1970s disco era\n\n## 4. Detailed Features\nMaterial: Polyester\n"
    section = find_section(text, "era")
    assert "1970s disco era" in section
    assert "Polyester" not in section
    era = narrative.extract_era(text)
    assert era.classification == "1970s disco era"
    assert era.decade == "1970s"


def test_rarity_from_section_and_default():
    assert narrative.extract_rarity(NARRATIVE) == "rare"
    assert narrative.extract_rarity("Plain cotton tee, nothing remarkable.") == "common"


def test_rarity_falls_back_to_whole_narrative():
    assert narrative.extract_rarity("This jacket is legendary among collectors.") == "legendary"


def test_era_classification_rationale_and_decade():
    era = narrative.extract_era(NARRATIVE)
    assert era.classification == "1990s vintage"
    assert era.rationale == "Single-stitch hems and the care tag format point to the 1990s."
    assert era.decade == "1990s"


def test_era_defaults_without_section():
    era = narrative.extract_era("Some text mentioning the 1980s but no era heading.")
    assert era.classification == "Modern"
    assert era.rationale == "Based on style and condition indicators"
    assert era.decade is None


def test_detailed_features():
    features = narrative.extract_detailed_features(NARRATIVE)
    assert features.material == "100% cotton denim"
    assert features.color == "Medium stonewash blue"
    assert features.pattern == "Solid"
    assert features.size == "32x34"
    assert features.care_instructions == "Machine wash cold"
    assert features.country_of_manufacture == "USA"


def test_detailed_features_absent():
    assert narrative.extract_detailed_features("Nothing structured here.") is None


def test_country_from_made_in_phrase():
    text = "4. DETAILED FEATURES\nThe care label says it was made in Portugal.\n"
    assert narrative.extract_field("country_of_manufacture", text) == "Portugal"


def test_condition_mapping():
    condition = narrative.extract_condition(NARRATIVE)
    assert condition.score == 4
    assert condition.description == "Excellent condition"
    assert condition.tags == ["pre-owned", "excellent"]

    worn = narrative.extract_condition("4. DETAILED FEATURES\nCondition: Very good with minor pilling\n")
    assert worn.score == 3

    brand_new = narrative.extract_condition("4. DETAILED FEATURES\nCondition: New with tags\n")
    assert brand_new.score == 5
    assert brand_new.tags == ["new", "unworn"]


def test_condition_default():
    condition = narrative.extract_condition("")
    assert condition.score == 3
    assert condition.description == "Good condition based on visual analysis"
    assert condition.tags == ["pre-owned", "wearable"]


def test_additional_observations():
    observations = narrative.extract_additional_observations(NARRATIVE)
    assert observations.cultural_significance == "Classic 501 cut worn widely in 90s streetwear."
    assert observations.investment_potential == "Likely to hold value as vintage denim demand grows."
    assert observations.resale_platforms == ["Grailed", "Depop", "eBay"]


def test_additional_observations_absent():
    assert narrative.extract_additional_observations("1. BRAND IDENTIFICATION\nBrand: Zara\n") is None


def test_brand_mention():
    assert narrative.extract_brand_mention(NARRATIVE) == ("Levi's", 85)
    assert narrative.extract_brand_mention("1. BRAND IDENTIFICATION\n**Brand:** **Supreme**\n") == ("Supreme", None)
    assert narrative.extract_brand_mention("No brand section.") == (None, None)


def test_brand_mention_keeps_accents_and_curly_apostrophes():
    section = "1. BRAND IDENTIFICATION\n"
    assert narrative.extract_brand_mention(section + "Brand: Comme des Garçons\n") == ("Comme des Garçons", None)
    assert narrative.extract_brand_mention(section + "**Brand:** Levi’s  \n") == ("Levi’s", None)
    assert narrative.extract_brand_mention(section + "Brand Name: Maison Kitsuné (likely)\n") == ("Maison Kitsuné", None)


def test_needs_more_images():
    assert narrative.needs_more_images("Please upload another photo of the neck tag.")
    assert narrative.needs_more_images("Could you upload a clear photo showing the care label?")
    assert not narrative.needs_more_images(NARRATIVE)


def test_vision_result_keywords_and_alternatives():
    vision = VisionResult.from_text(NARRATIVE + "\nThe logo shows Nike style swoosh stitching.")
    assert "denim" in vision.labels
    assert "levi's" in vision.logos
    assert "nike" in vision.logos
    assert vision.brand_alternatives("Levi's") == ["Nike"]
