"""
Conversion between snake_case schema identifiers and CapWords field identifiers.

`snake_to_camel` is the direction used for column matching. `camel_to_snake`
is provided for symmetry only and is not an exact inverse: ``url_ID`` becomes
``UrlID`` and then ``url_i_d``, ``orderId`` becomes ``order_id`` and then
``OrderId``.
"""

__all__ = ['snake_to_camel', 'camel_to_snake']


def snake_to_camel(name: str) -> str:
    """Convert a schema name such as ``order_id`` to ``OrderId``.

    Splits on underscores and capitalises the first letter of every segment,
    leaving the rest of each segment untouched.
    """
    return ''.join(segment[:1].upper() + segment[1:] for segment in name.split('_'))


def camel_to_snake(name: str) -> str:
    """Convert a field identifier such as ``OrderId`` to ``order_id``.

    An underscore is inserted before every uppercase letter except the first
    character, then everything is lowercased.
    """
    result = []
    for i, c in enumerate(name):
        if i and c.isupper():
            result.append('_')
        result.append(c.lower())
    return ''.join(result)
