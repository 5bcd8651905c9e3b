import os


def config_get_hex_str(value: str, name: str = "") -> str:
    """Returns a hex string from either a hex value or a path to a binary file

    Macaroons can be configured either directly as a hex string or as a path
    to the macaroon file on disk. The file content is hex encoded.
    """
    if value is None or len(value) == 0:
        raise ValueError(f"{name} cannot be null or empty")

    isPath = os.path.exists(value)
    if isPath:
        with open(value, "rb") as f:
            m = f.read()
            m = m.hex()
            return m

    return value
