"""
Built-in DGU rate table (GBP, inc VAT).

Rates are per m² for each area band. A band missing from a glass pair means the
pair is not sold at that size (thin glass on large panes).
"""

AREA_BANDS = [
    {"name": "under_0_5", "upper": "0.5", "inclusive": False},
    {"name": "0_5_to_0_99", "upper": "1.0", "inclusive": False},
    {"name": "1_0_to_1_49", "upper": "1.5", "inclusive": False},
    {"name": "1_5_to_1_99", "upper": "2.0", "inclusive": False},
    {"name": "2_0_to_2_5", "upper": "2.5", "inclusive": True},
    {"name": "2_51_to_3_0", "upper": "3.0", "inclusive": True},
]

SELF_CLEANING_RATES = {
    "under_0_5": "32.00",
    "0_5_to_0_99": "30.00",
    "1_0_to_1_49": "29.00",
    "1_5_to_1_99": "28.00",
    "2_0_to_2_5": "27.00",
    "2_51_to_3_0": "26.00",
}

GLASS_PAIRS = [
    {
        "outer": "4mm Clear", "inner": "4mm Clear", "minimumPrice": "72.07",
        "rates": {
            "under_0_5": "150.00", "0_5_to_0_99": "150.00", "1_0_to_1_49": "145.00",
            "1_5_to_1_99": "140.00", "2_0_to_2_5": "135.00",
        },
    },
    {
        "outer": "4mm Clear", "inner": "4mm Obscure", "minimumPrice": "79.50",
        "rates": {
            "under_0_5": "165.00", "0_5_to_0_99": "165.00", "1_0_to_1_49": "160.00",
            "1_5_to_1_99": "155.00", "2_0_to_2_5": "150.00",
        },
    },
    {
        "outer": "4mm Obscure", "inner": "4mm Obscure", "minimumPrice": "86.00",
        "rates": {
            "under_0_5": "178.00", "0_5_to_0_99": "178.00", "1_0_to_1_49": "172.00",
            "1_5_to_1_99": "168.00", "2_0_to_2_5": "164.00",
        },
    },
    {
        "outer": "6mm Clear", "inner": "6mm Clear", "minimumPrice": "95.00",
        "rates": {
            "under_0_5": "190.00", "0_5_to_0_99": "188.00", "1_0_to_1_49": "184.00",
            "1_5_to_1_99": "180.00", "2_0_to_2_5": "176.00", "2_51_to_3_0": "172.00",
        },
    },
    {
        "outer": "6mm Clear", "inner": "6mm Obscure", "minimumPrice": "102.00",
        "rates": {
            "under_0_5": "204.00", "0_5_to_0_99": "202.00", "1_0_to_1_49": "198.00",
            "1_5_to_1_99": "194.00", "2_0_to_2_5": "190.00", "2_51_to_3_0": "186.00",
        },
    },
    {
        "outer": "6mm Obscure", "inner": "6mm Obscure", "minimumPrice": "109.00",
        "rates": {
            "under_0_5": "216.00", "0_5_to_0_99": "214.00", "1_0_to_1_49": "210.00",
            "1_5_to_1_99": "206.00", "2_0_to_2_5": "202.00", "2_51_to_3_0": "198.00",
        },
    },
    {
        "outer": "6.4mm Laminated", "inner": "4mm Clear", "minimumPrice": "118.00",
        "rates": {
            "under_0_5": "235.00", "0_5_to_0_99": "232.00", "1_0_to_1_49": "226.00",
            "1_5_to_1_99": "220.00", "2_0_to_2_5": "214.00", "2_51_to_3_0": "208.00",
        },
    },
]

DEFAULT_DGU_RATES = {
    "bands": AREA_BANDS,
    "selfCleaningRates": SELF_CLEANING_RATES,
    "pairs": GLASS_PAIRS,
}
