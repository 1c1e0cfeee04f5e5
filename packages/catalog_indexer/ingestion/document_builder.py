"""
Product Document Builder

Turns the raw payload rows of an ingestion job into index-ready product
documents plus the text each document is embedded from.

Payload shapes accepted per row:
- a JSON array of products
- an object with a ``documents``, ``items`` or ``products`` array
- an object with a single ``document`` object
- a bare product object

Unparsable payloads, non-object elements and scalar roots count as parse
failures. Objects without any known field still become documents.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Candidate source keys per logical field, first present non-empty value wins
FIELD_SYNONYMS = {
    'id': ['id', 'productId', 'product_id'],
    'name': ['name', 'title'],
    'description': ['description', 'summary'],
    'brand': ['brand'],
    'category': ['category', 'category_name'],
    'price': ['price', 'unit_price', 'amount'],
    'in_stock': ['in_stock', 'inStock', 'available'],
    'attributes': ['attributes', 'attrs', 'metadata'],
}

COLLECTION_KEYS = ['documents', 'items', 'products']
SINGLE_DOCUMENT_KEY = 'document'

_TRUE_STRINGS = {'true', 'yes', '1'}
_FALSE_STRINGS = {'false', 'no', '0'}


@dataclass
class ProductIndexDocument:
    """A product ready for embedding and bulk indexing."""
    id: str
    embedding_text: str
    body: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DocumentBuildResult:
    documents: List[ProductIndexDocument]
    parse_failures: int

    @property
    def attempted(self) -> int:
        return len(self.documents) + self.parse_failures


# ============================================================================
# Field extraction
# ============================================================================

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def get_string(product: Dict[str, Any], names: Iterable[str]) -> Optional[str]:
    """First non-blank string (numbers are rendered as text)."""
    for name in names:
        value = product.get(name)
        if isinstance(value, str) and value.strip():
            return value
        if _is_number(value):
            return str(value)
    return None


def get_number(product: Dict[str, Any], names: Iterable[str]) -> Optional[float]:
    """First finite number or numeric string."""
    for name in names:
        value = product.get(name)
        number = None
        if _is_number(value):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError:
                number = None
        if number is not None and math.isfinite(number):
            return number
    return None


def get_bool(product: Dict[str, Any], names: Iterable[str]) -> Optional[bool]:
    """First boolean or boolean-like string (true/false/yes/no/1/0)."""
    for name in names:
        value = product.get(name)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
    return None


def get_object(product: Dict[str, Any], names: Iterable[str]) -> Optional[Dict[str, Any]]:
    for name in names:
        value = product.get(name)
        if isinstance(value, dict):
            return value
    return None


def build_embedding_text(parts: Iterable[Optional[str]], fallback: str) -> str:
    """Space-join the non-blank parts, or fall back to the raw payload."""
    text = " ".join(part.strip() for part in parts if part and part.strip())
    return text if text else fallback


# ============================================================================
# Payload traversal
# ============================================================================

def extract_products(root: Any) -> Optional[List[Any]]:
    """
    Locate the product collection inside a parsed payload.

    Returns:
        Candidate product elements, or None when the root is a scalar
    """
    if isinstance(root, list):
        return root

    if isinstance(root, dict):
        for key in COLLECTION_KEYS:
            if isinstance(root.get(key), list):
                return root[key]

        document = root.get(SINGLE_DOCUMENT_KEY)
        if isinstance(document, dict):
            return [document]

        return [root]

    return None


def build_document(
    tenant_id: str,
    row_id: Any,
    sequence: int,
    product: Dict[str, Any],
    raw_payload: str,
) -> ProductIndexDocument:
    """Map one product object onto the index document shape."""
    row_key = row_id.hex if hasattr(row_id, 'hex') else str(row_id)
    product_id = get_string(product, FIELD_SYNONYMS['id']) or f"{row_key}-{sequence}"

    name = get_string(product, FIELD_SYNONYMS['name'])
    description = get_string(product, FIELD_SYNONYMS['description'])
    brand = get_string(product, FIELD_SYNONYMS['brand'])
    category = get_string(product, FIELD_SYNONYMS['category'])

    body = {
        'tenant_id': tenant_id,
        'product_id': product_id,
        'name': name,
        'description': description,
        'brand': brand,
        'category': category,
        'price': get_number(product, FIELD_SYNONYMS['price']),
        'in_stock': get_bool(product, FIELD_SYNONYMS['in_stock']),
        'attributes': get_object(product, FIELD_SYNONYMS['attributes']),
    }

    embedding_text = build_embedding_text([name, description, brand, category], raw_payload)
    return ProductIndexDocument(id=product_id, embedding_text=embedding_text, body=body)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"{text} is out of range")
    return value


def _decode_payload(payload: Any) -> Tuple[bool, Any, str]:
    """Returns (ok, parsed root, payload text)."""
    if isinstance(payload, (dict, list)):
        try:
            return True, payload, json.dumps(payload, allow_nan=False)
        except (ValueError, RecursionError):
            return False, None, ""

    if not isinstance(payload, str) or not payload.strip():
        return False, None, ""

    # NaN/Infinity are rejected and nesting is bounded by the recursion limit
    try:
        return True, json.loads(payload, parse_constant=_reject_constant, parse_float=_finite_float), payload
    except (ValueError, RecursionError):
        return False, None, payload


def build_documents(rows: Iterable[Any]) -> DocumentBuildResult:
    """
    Build documents for every raw row of a job.

    Args:
        rows: Objects exposing ``id``, ``tenant_id`` and ``payload_json``

    Returns:
        DocumentBuildResult with the documents and the parse failure count
    """
    documents: List[ProductIndexDocument] = []
    parse_failures = 0

    for row in rows:
        ok, root, payload_text = _decode_payload(row.payload_json)
        if not ok:
            logger.debug(f"Unparsable payload in raw row {row.id}")
            parse_failures += 1
            continue

        products = extract_products(root)
        if products is None:
            parse_failures += 1
            continue

        sequence = 0
        for product in products:
            if not isinstance(product, dict):
                parse_failures += 1
                continue

            documents.append(build_document(row.tenant_id, row.id, sequence, product, payload_text))
            sequence += 1

    return DocumentBuildResult(documents=documents, parse_failures=parse_failures)
