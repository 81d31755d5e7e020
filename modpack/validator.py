"""Validate a module descriptor against the packaged schema.
Usage: python -m modpack.validator path/to/mod.json
"""

import json
import sys

from .descriptor import DescriptorValidationError, validate_descriptor


def validate_descriptor_file(path: str) -> bool:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.loads(f.read())
    except (OSError, json.JSONDecodeError) as e:
        print(f"Unable to read descriptor {path}: {e}")
        return False
    try:
        validate_descriptor(data)
        print("Descriptor is valid")
        return True
    except DescriptorValidationError as e:
        print("Descriptor validation failed:")
        print(e)
        return False


if __name__ == '__main__':
    if len(sys.argv) < 2:
        print("Usage: python -m modpack.validator path/to/mod.json")
        sys.exit(2)
    ok = validate_descriptor_file(sys.argv[1])
    sys.exit(0 if ok else 1)
