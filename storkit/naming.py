"""Stable names for objects derived from node names."""

import hashlib
import logging

logger = logging.getLogger(__name__)

DNS1035_LABEL_MAX_LENGTH = 63


def hash_name(s: str) -> str:
    """A stable pseudorandom string for use in object names.

    The output must never change for a given input.
    """
    return hashlib.sha256(s.encode()).digest()[:16].hex()


def truncate_node_name(fmt: str, node_name: str) -> str:
    """Fill ``fmt`` (with one ``%s``) with the node name, hashing it if the result is too long."""
    if len(node_name) + len(fmt % "") > DNS1035_LABEL_MAX_LENGTH:
        hashed = hash_name(node_name)
        logger.info(
            "format and nodeName longer than %d chars, nodeName %s will be %s",
            DNS1035_LABEL_MAX_LENGTH,
            node_name,
            hashed,
        )
        node_name = hashed
    return fmt % node_name