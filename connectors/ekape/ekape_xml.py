"""EKAPE XML response parsing.

Every EKAPE endpoint answers with the public-data-portal envelope:

    <response>
      <header><resultCode>00</resultCode><resultMsg>NORMAL SERVICE.</resultMsg></header>
      <body><items><item>...</item></items></body>
    </response>

Items are flat elements; each child tag becomes a string value.
"""

import xml.etree.ElementTree as ET
from typing import Dict, List

from connectors.ekape.errors import EkapeResponseError


SUCCESS_CODES = ("00", "0")


def _text(element) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def parse_ekape_items(xml_text: str) -> List[Dict[str, str]]:
    """Parse an EKAPE response into a list of flat item dicts.

    Args:
        xml_text: Raw response body

    Returns:
        Items in document order; an empty list when the body has none

    Raises:
        EkapeResponseError: If the XML is malformed or resultCode is not a
            success code
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise EkapeResponseError(f"Malformed XML response: {e}", response_body=xml_text[:300])

    # Some gateways answer with the bare envelope children at the root
    header = root.find("header") if root.tag == "response" else root.find("response/header")
    if header is None:
        header = root.find(".//header")

    result_code = _text(header.find("resultCode")) if header is not None else ""
    if result_code not in SUCCESS_CODES:
        result_msg = _text(header.find("resultMsg")) if header is not None else ""
        raise EkapeResponseError(
            f"API error [{result_code or 'unknown'}]: {result_msg or 'unknown error'}",
            result_code=result_code,
            response_body=xml_text[:300],
        )

    items = []
    for item in root.iter("item"):
        items.append({child.tag: _text(child) for child in item})
    return items
