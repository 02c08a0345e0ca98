"""Hexadecimal rendering of byte strings."""


def hex_str(data, upper=False):
    """Return the hexadecimal text of ``data``, two digits per byte.

    Digits are lower case unless ``upper`` is true.
    """
    text = bytes(data).hex()
    return text.upper() if upper else text