"""
Tariffs and thresholds used by the bundled pricing modules.

Single place for every hard-coded business value; modules only read from
here. Money in EUR, volumes in m3, distances in km unless noted.
"""

from decimal import Decimal

D = Decimal

DISTANCE = {
    "DEFAULT_KM": D("20"),
    "MAX_KM": D("5000"),
    "LONG_DISTANCE_THRESHOLD_KM": D("50"),
    "OVERNIGHT_STOP_THRESHOLD_KM": D("1000"),
}

FUEL = {
    "PRICE_PER_LITER": D("1.70"),
    "CONSUMPTION_L_PER_100KM": D("12"),
}

TOLLS = {
    "COST_PER_KM": D("0.08"),
    "HIGHWAY_SHARE": D("0.7"),
}

VEHICLES = {
    # type -> (capacity m3, rental cost)
    "CAMION_12M3": (D("12"), D("80")),
    "CAMION_20M3": (D("20"), D("250")),
    "CAMION_30M3": (D("30"), D("350")),
}
DEFAULT_VEHICLE_TYPE = "CAMION_20M3"

VOLUME = {
    "COEFFICIENTS": {"STUDIO": D("0.50"), "F2": D("0.45"), "F3": D("0.45"), "F4": D("0.45"), "HOUSE": D("0.40")},
    "BASE_BY_TYPE": {"STUDIO": D("12"), "F2": D("20"), "F3": D("30"), "F4": D("40"), "HOUSE": D("60")},
    "BASE_BY_ROOMS": {1: D("12"), 2: D("20"), 3: D("30"), 4: D("40"), 5: D("50"), 6: D("60")},
    "MIN_M3": D("5"),
    "MAX_M3": D("200"),
    "SPECIAL_ITEMS": {
        "piano": D("8"),
        "bulky_furniture": D("5"),
        "safe": D("3"),
        "artwork": D("2"),
        "built_in_appliances": D("3"),
    },
    # method -> confidence -> multiplier
    "CONFIDENCE_MARGINS": {
        "VIDEO": {"LOW": D("1.05"), "MEDIUM": D("1.02"), "HIGH": D("1.0")},
        "LIST": {"LOW": D("1.10"), "MEDIUM": D("1.05"), "HIGH": D("1.02")},
        "FORM_USER_PROVIDED": {"LOW": D("1.10"), "MEDIUM": D("1.05"), "HIGH": D("1.02")},
        "FORM_CALCULATED": {"LOW": D("1.20"), "MEDIUM": D("1.10"), "HIGH": D("1.05")},
    },
}

LABOR = {
    "DEFAULT_WORKERS": 2,
    "HOURLY_RATE": D("30"),
    "WORK_DAY_HOURS": D("7"),
    "MIN_HOURS": D("3"),
    "VOLUME_PER_WORKER": D("5"),
    "MINUTES_PER_M3_PER_WORKER": D("15"),
    "FLOOR_PENALTY_MINUTES": D("5"),
    "ECO_MAX_WORKERS": 2,
    "STANDARD_WORKERS_FACTOR": D("0.5"),
    "STAIRS_PER_FLOOR": D("25"),
    "STAIRS_FLOOR_THRESHOLD": 3,
    "CARRY_PER_METER": D("2"),
    "CARRY_THRESHOLD_M": D("30"),
    "FLEXIBILITY_GUARANTEE": D("500"),
}

FURNITURE_LIFT = {
    "BASE_COST": D("250"),
    "DOUBLE_SURCHARGE": D("250"),
    "HIGH_FLOOR": 3,
    "CRITICAL_FLOOR": 5,
}

ACCESS = {
    "NO_ELEVATOR_RISK": 15,
}

LOGISTICS = {
    "NAVETTE_BASE": D("20"),
    "NAVETTE_PER_KM": D("0.5"),
    "HOTEL_PER_WORKER": D("120"),
    "SECURE_PARKING": D("50"),
    "MEAL_PER_WORKER": D("30"),
}

TEMPORAL = {
    "WEEKEND_RATE": D("0.05"),
    "WEEKEND_RISK": 8,
    "END_OF_MONTH_DAY": 25,
    "END_OF_MONTH_RATE": D("0.05"),
    "END_OF_MONTH_RISK": 10,
}

CROSS_SELLING = {
    "PACKING_PER_M3": D("5"),
    "PACKING_VOLUME_THRESHOLD": D("40"),
    "STORAGE_PER_M3_PER_MONTH": D("30"),
    "STORAGE_DEFAULT_DAYS": 30,
    "DAYS_PER_MONTH": 30,
    "CLEANING_PER_M2": D("8"),
    "CLEANING_SURFACE_THRESHOLD": D("60"),
    "DEFAULT_SURFACE_M2": D("50"),
    "ASSEMBLY_BASE": D("50"),
    "ASSEMBLY_PER_COMPLEX_ITEM": D("25"),
    "ASSEMBLY_PER_BULKY": D("40"),
    "ASSEMBLY_PIANO": D("60"),
    "SUPPLIES_PER_M3": D("2.5"),
}

HIGH_VALUE = {
    "HANDLING": {"piano": D("150"), "safe": D("200"), "artwork": D("100")},
    "RISK": 15,
    "HIGH_DECLARED_VALUE": D("50000"),
}

INSURANCE = {
    "PREMIUM_RATE": D("0.005"),
    "MIN_PREMIUM": D("50"),
}

RISK = {
    "VOLUME_UNCERTAINTY": {"LOW": 15, "MEDIUM": 8, "HIGH": 3},
}
