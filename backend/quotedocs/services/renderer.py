"""Rendering collaborators for the document cache.

The cache only needs two things from rendering: bytes for (quote, variant),
and that identical content renders to identical bytes. Layout lives
elsewhere; TextDocumentRenderer is a plain deterministic default.
"""

from typing import Any, Mapping, Protocol

from quotedocs.models.quote import Quote
from quotedocs.schemas.quote import QuoteItem


class DocumentRenderer(Protocol):
    content_type: str
    extension: str

    def render(self, quote: Quote, variant: str, context: Mapping[str, Any]) -> bytes:
        ...


class OwnerLookup(Protocol):
    """Read-only owner/company details shown on documents."""

    async def get_context(self, owner_id: str) -> dict[str, Any]:
        ...


class NullOwnerLookup:
    async def get_context(self, owner_id: str) -> dict[str, Any]:
        return {}


_LABELS = {
    "en": {
        "title": "QUOTE",
        "quote": "Quote",
        "customer": "Customer",
        "phone": "Phone",
        "address": "Address",
        "provider": "Provided by",
        "items": "Items",
        "diameter": "Diameter (in)",
        "height": "Height (ft)",
        "risks": "Risk factors",
        "notes": "Notes",
        "total": "Total",
    },
    "es": {
        "title": "COTIZACIÓN",
        "quote": "Cotización",
        "customer": "Cliente",
        "phone": "Teléfono",
        "address": "Dirección",
        "provider": "Proporcionado por",
        "items": "Artículos",
        "diameter": "Diámetro (pulg)",
        "height": "Altura (pies)",
        "risks": "Factores de riesgo",
        "notes": "Notas",
        "total": "Total",
    },
}


def format_cents(cents: int) -> str:
    return f"${cents / 100:,.2f}"


class TextDocumentRenderer:
    content_type = "text/plain; charset=utf-8"
    extension = "txt"

    def render(self, quote: Quote, variant: str, context: Mapping[str, Any]) -> bytes:
        labels = _LABELS.get(variant, _LABELS["en"])
        lines = [labels["title"], f"{labels['quote']}: {quote.id}", ""]

        provider = context.get("company_name") or context.get("name")
        if provider:
            lines.append(f"{labels['provider']}: {provider}")

        lines.append(f"{labels['customer']}: {quote.customer_name}")
        if quote.customer_phone:
            lines.append(f"{labels['phone']}: {quote.customer_phone}")
        if quote.customer_address:
            lines.append(f"{labels['address']}: {quote.customer_address}")

        lines += ["", f"{labels['items']}:"]
        for index, raw in enumerate(quote.items or [], start=1):
            item = QuoteItem.model_validate(raw)
            lines.append(f"{index}. [{item.type.value}] {item.description} {format_cents(item.price)}")
            if item.diameter_in_inches is not None:
                lines.append(f"   {labels['diameter']}: {item.diameter_in_inches:g}")
            if item.height_in_feet is not None:
                lines.append(f"   {labels['height']}: {item.height_in_feet:g}")
            if item.risk_factors:
                lines.append(f"   {labels['risks']}: {', '.join(item.risk_factors)}")

        if quote.notes:
            lines += ["", f"{labels['notes']}: {quote.notes}"]
        lines += ["", f"{labels['total']}: {format_cents(quote.total_price)}", ""]
        return "\n".join(lines).encode("utf-8")
