"""YAML decoding for Jifty responses.

Jifty serializes with Perl YAML modules, which tag blessed objects as
``!!perl/hash:Class``. Those tags are decoded to plain Python values.
"""

from typing import Any

import yaml


class JiftyYamlLoader(yaml.SafeLoader):
    """SafeLoader that accepts Perl object tags."""


def _construct_perl_object(
    loader: yaml.SafeLoader,
    tag_suffix: str,  # noqa: ARG001
    node: yaml.Node,
) -> Any:
    if isinstance(node, yaml.MappingNode):
        return loader.construct_mapping(node, deep=True)
    if isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    return loader.construct_scalar(node)


JiftyYamlLoader.add_multi_constructor("tag:yaml.org,2002:perl/", _construct_perl_object)
JiftyYamlLoader.add_multi_constructor("!perl/", _construct_perl_object)


def load_yaml(content: bytes) -> Any:
    """Decode a UTF-8 YAML response body.

    Args:
        content: Raw response body.

    Returns:
        The decoded structure, or None for an empty document.

    Raises:
        UnicodeDecodeError: If the body is not valid UTF-8.
        yaml.YAMLError: If the body is not valid YAML.
    """
    return yaml.load(content.decode("utf-8"), Loader=JiftyYamlLoader)  # noqa: S506
