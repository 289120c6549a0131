"""IBGE geographic reference - Brazilian states and their municipalities"""
import logging
import unicodedata
from typing import Dict, List, Optional

import httpx

from models import CityOption

logger = logging.getLogger(__name__)

IBGE_API_BASE = "https://servicodados.ibge.gov.br/api/v1/localidades"

BRAZIL_STATES: List[Dict[str, str]] = [
    {"value": "AC", "label": "Acre"},
    {"value": "AL", "label": "Alagoas"},
    {"value": "AP", "label": "Amapá"},
    {"value": "AM", "label": "Amazonas"},
    {"value": "BA", "label": "Bahia"},
    {"value": "CE", "label": "Ceará"},
    {"value": "DF", "label": "Distrito Federal"},
    {"value": "ES", "label": "Espírito Santo"},
    {"value": "GO", "label": "Goiás"},
    {"value": "MA", "label": "Maranhão"},
    {"value": "MT", "label": "Mato Grosso"},
    {"value": "MS", "label": "Mato Grosso do Sul"},
    {"value": "MG", "label": "Minas Gerais"},
    {"value": "PA", "label": "Pará"},
    {"value": "PB", "label": "Paraíba"},
    {"value": "PR", "label": "Paraná"},
    {"value": "PE", "label": "Pernambuco"},
    {"value": "PI", "label": "Piauí"},
    {"value": "RJ", "label": "Rio de Janeiro"},
    {"value": "RN", "label": "Rio Grande do Norte"},
    {"value": "RS", "label": "Rio Grande do Sul"},
    {"value": "RO", "label": "Rondônia"},
    {"value": "RR", "label": "Roraima"},
    {"value": "SC", "label": "Santa Catarina"},
    {"value": "SP", "label": "São Paulo"},
    {"value": "SE", "label": "Sergipe"},
    {"value": "TO", "label": "Tocantins"},
]

_STATE_LABELS = {s["value"]: s["label"] for s in BRAZIL_STATES}


def state_label(code: str) -> Optional[str]:
    return _STATE_LABELS.get((code or "").upper())


def _sort_key(label: str) -> str:
    # accent-insensitive, so "Águas Belas" sorts with the A's
    decomposed = unicodedata.normalize("NFKD", label)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


async def fetch_cities(state_code: str) -> List[CityOption]:
    """Municipalities of a state, sorted by name. Returns [] on any failure."""
    code = (state_code or "").upper()
    if code not in _STATE_LABELS:
        return []

    try:
        url = f"{IBGE_API_BASE}/estados/{code}/municipios"
        async with httpx.AsyncClient() as client:
            response = await client.get(url, timeout=15.0)
            response.raise_for_status()
            data = response.json()
    except Exception as e:
        logger.error(f"Failed to load cities for {code}: {str(e)}")
        return []

    cities = [
        CityOption(value=city["nome"], label=city["nome"])
        for city in data
        if isinstance(city, dict) and city.get("nome")
    ]
    cities.sort(key=lambda c: _sort_key(c.label))
    return cities
