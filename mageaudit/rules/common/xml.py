"""Safe loading of XML configuration files."""

import xml.etree.ElementTree as ET

from mageaudit.indexer.core import SourceFile
from mageaudit.indexer.exceptions import MalformedMarkupError


def load_xml(source: SourceFile) -> ET.Element:
    """Parse a configuration file.

    Raises:
        MalformedMarkupError: the file is not well-formed XML
        UnreadableFileError: the file cannot be read
    """
    try:
        return ET.fromstring(source.text)
    except ET.ParseError as e:
        raise MalformedMarkupError(source.path, str(e)) from e


def iter_types(root: ET.Element):
    """Yield every ``<type>`` element with a ``name``."""
    for element in root.iter("type"):
        if element.get("name"):
            yield element


def is_disabled(element: ET.Element) -> bool:
    return (element.get("disabled") or "").strip().lower() == "true"


def argument_value(argument: ET.Element) -> str:
    return (argument.text or "").strip().lstrip("\\")
