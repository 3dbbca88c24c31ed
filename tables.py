"""
Static lookup tables: sector labels and colors, sector -> industry grouping,
industry and region colors, and the fallbacks used when Climate TRACE is down.
Aggregation code reads these; it never hardcodes its own.
"""
from types import MappingProxyType

# Industry order is also the column order of a trend point.
INDUSTRIES = (
    "Energy",
    "Manufacturing",
    "Transportation",
    "Buildings",
    "Agriculture",
    "Waste & Land Use",
)

# Upstream sector slug -> display label
SECTOR_LABELS = MappingProxyType({
    "power": "Power Generation",
    "electricity-generation": "Power Generation",
    "transportation": "Transportation",
    "road-transportation": "Road Transport",
    "domestic-aviation": "Aviation",
    "international-aviation": "International Aviation",
    "international-shipping": "Shipping",
    "manufacturing": "Manufacturing",
    "steel": "Steel Production",
    "cement": "Cement Production",
    "chemicals": "Chemicals",
    "petrochemical-steam-cracking": "Petrochemicals",
    "buildings": "Buildings",
    "residential-and-commercial-onsite-fuel-usage": "Buildings",
    "agriculture": "Agriculture",
    "enteric-fermentation-cattle-pasture": "Livestock",
    "rice-cultivation": "Rice Cultivation",
    "fossil-fuel-operations": "Fossil Fuel Operations",
    "oil-and-gas-production-and-transport": "Oil & Gas",
    "oil-and-gas-refining": "Oil Refining",
    "coal-mining": "Coal Mining",
    "waste": "Waste",
    "solid-waste-disposal": "Solid Waste",
    "forestry-and-land-use": "Land Use",
    "forest-land-clearing": "Deforestation",
    "mineral-extraction": "Mining",
})

SECTOR_COLORS = MappingProxyType({
    "Power Generation": "#f59e0b",
    "Transportation": "#06b6d4",
    "Road Transport": "#06b6d4",
    "Aviation": "#0891b2",
    "Shipping": "#0e7490",
    "Manufacturing": "#8b5cf6",
    "Steel Production": "#7c3aed",
    "Cement Production": "#6d28d9",
    "Chemicals": "#5b21b6",
    "Buildings": "#ec4899",
    "Agriculture": "#22c55e",
    "Livestock": "#16a34a",
    "Fossil Fuel Operations": "#64748b",
    "Oil & Gas": "#475569",
    "Coal Mining": "#334155",
    "Waste": "#a855f7",
    "Land Use": "#84cc16",
    "Deforestation": "#65a30d",
    "Mining": "#78716c",
})

DEFAULT_COLOR = "#6b7280"

# Industry -> display labels of its sectors. A label belongs to one industry.
INDUSTRY_GROUPS = MappingProxyType({
    "Energy": ("Power Generation", "Fossil Fuel Operations", "Oil & Gas", "Coal Mining", "Oil Refining"),
    "Transportation": ("Transportation", "Road Transport", "Aviation", "International Aviation", "Shipping"),
    "Manufacturing": ("Manufacturing", "Steel Production", "Cement Production", "Chemicals", "Petrochemicals"),
    "Buildings": ("Buildings",),
    "Agriculture": ("Agriculture", "Livestock", "Rice Cultivation"),
    "Waste & Land Use": ("Waste", "Solid Waste", "Land Use", "Deforestation"),
})

SECTOR_TO_INDUSTRY = MappingProxyType({
    label: industry for industry, labels in INDUSTRY_GROUPS.items() for label in labels
})

INDUSTRY_COLORS = MappingProxyType({
    "Energy": "#f59e0b",
    "Transportation": "#06b6d4",
    "Manufacturing": "#8b5cf6",
    "Buildings": "#ec4899",
    "Agriculture": "#22c55e",
    "Waste & Land Use": "#a855f7",
})

# Raw upstream slug -> industry, used for the window-level share breakdown
SLUG_TO_INDUSTRY = MappingProxyType({
    "power": "Energy",
    "electricity-generation": "Energy",
    "fossil-fuel-operations": "Energy",
    "oil-and-gas-production-and-transport": "Energy",
    "oil-and-gas-refining": "Energy",
    "coal-mining": "Energy",
    "other-energy-use": "Energy",

    "manufacturing": "Manufacturing",
    "steel": "Manufacturing",
    "cement": "Manufacturing",
    "chemicals": "Manufacturing",
    "petrochemical-steam-cracking": "Manufacturing",
    "aluminum": "Manufacturing",
    "pulp-and-paper": "Manufacturing",
    "other-manufacturing": "Manufacturing",

    "transportation": "Transportation",
    "road-transportation": "Transportation",
    "domestic-aviation": "Transportation",
    "international-aviation": "Transportation",
    "international-shipping": "Transportation",
    "domestic-shipping": "Transportation",
    "railways": "Transportation",
    "other-transport": "Transportation",

    "buildings": "Buildings",
    "residential-and-commercial-onsite-fuel-usage": "Buildings",

    "agriculture": "Agriculture",
    "enteric-fermentation-cattle-pasture": "Agriculture",
    "enteric-fermentation-cattle-feedlot": "Agriculture",
    "rice-cultivation": "Agriculture",
    "cropland-fires": "Agriculture",
    "synthetic-fertilizer-application": "Agriculture",
    "manure-management-cattle-feedlot": "Agriculture",
    "manure-left-on-pasture-cattle": "Agriculture",
    "other-agricultural-soil-emissions": "Agriculture",

    "waste": "Waste & Land Use",
    "solid-waste-disposal": "Waste & Land Use",
    "wastewater-treatment-and-discharge": "Waste & Land Use",
    "forestry-and-land-use": "Waste & Land Use",
    "forest-land-clearing": "Waste & Land Use",
    "forest-land-degradation": "Waste & Land Use",
    "shrubgrass-fires": "Waste & Land Use",
    "wetland-fires": "Waste & Land Use",
    "removals": "Waste & Land Use",
})

# Used when the asset feed is unavailable
FALLBACK_INDUSTRY_SHARES = MappingProxyType({
    "Energy": 0.35,
    "Manufacturing": 0.21,
    "Transportation": 0.16,
    "Buildings": 0.10,
    "Agriculture": 0.11,
    "Waste & Land Use": 0.07,
})

REGION_COLORS = MappingProxyType({
    "Asia": "#f59e0b",
    "North America": "#06b6d4",
    "Europe": "#8b5cf6",
    "Africa": "#22c55e",
    "South America": "#14b8a6",
    "Oceania": "#ec4899",
    "Antarctica": "#64748b",
})

# Largest emitters in rough descending order, used when ranking is impossible
FALLBACK_EMITTERS = (
    "CHN", "USA", "IND", "RUS", "JPN", "DEU", "IRN", "SAU", "IDN", "KOR",
    "CAN", "BRA", "ZAF", "MEX", "AUS", "GBR", "TUR", "POL", "ITA", "FRA",
    "THA", "VNM", "EGY", "MYS", "ARG", "PAK", "NGA", "ARE", "NLD", "PHL",
    "COL", "KAZ", "DZA", "IRQ", "CHL", "CZE", "ROU", "BGD", "UKR", "BEL",
)

GAS_INFO = MappingProxyType({
    "co2": ("Mt", "Carbon Dioxide"),
    "ch4": ("kt", "Methane"),
    "n2o": ("kt", "Nitrous Oxide"),
    "co2e_100yr": ("Mt", "CO2 Equivalent (100yr)"),
    "co2e_20yr": ("Mt", "CO2 Equivalent (20yr)"),
})

# Raw grams-scale divisor per gas: CO2 family -> megatonnes, CH4/N2O -> kilotonnes
GAS_DIVISORS = MappingProxyType({
    "co2": 1e6,
    "ch4": 1e3,
    "n2o": 1e3,
    "co2e_100yr": 1e6,
    "co2e_20yr": 1e6,
})

AVAILABLE_YEARS = tuple(range(2015, 2026))
