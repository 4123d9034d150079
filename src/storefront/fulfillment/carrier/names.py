"""Carrier ids accepted by the storefront and their display names."""

CARRIER_NAMES = {
    "cj": "CJ대한통운",
    "lotte": "롯데택배",
    "hanjin": "한진택배",
    "post": "우체국택배",
    "logen": "로젠택배",
    "epost": "우체국 EMS",
}


def carrier_display_name(carrier_id: str) -> str:
    return CARRIER_NAMES.get(carrier_id, carrier_id)
