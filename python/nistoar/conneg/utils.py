"""
functions that assist with interpreting the content-related headers of a web service request
"""
import re, math
from collections.abc import Mapping

__all__ = [ 'media_type', 'match_accept', 'acceptable', 'order_accepts', 'parse_accept',
            'get_header' ]

_q_re = re.compile(r';\s*q\s*=\s*([^;,\s]*)', re.IGNORECASE)

def media_type(ctype):
    """
    return the bare media type from a Content-Type value, dropping any parameters (e.g.
    "; charset=utf-8") and normalizing it to lower case.  None is returned if the input is
    empty.
    """
    if not ctype:
        return None
    out = ctype.split(';', 1)[0].strip().lower()
    return out or None

def match_accept(ctype, acceptable):
    """
    return the most specific content type of the two inputs if the two match each other, taking in
    account wildcards, or None if the two do not match.  The returned content type will end in "/*"
    if both input values end in "/*".
    """
    if ctype == acceptable or (acceptable.endswith('/*') and ctype.startswith(acceptable[:-1])):
        return ctype
    if ctype.endswith('/*') and acceptable.startswith(ctype[:-1]):
        return acceptable
    return None

def acceptable(ctype, acceptable):
    """
    return the first match of a given content type value (possibly a wildcard like "text/*") to
    a list of acceptable content types.  If the list is empty, the input type is returned.
    """
    if len(acceptable) == 0:
        return ctype
    if ctype in ['*', '*/*']:
        return acceptable[0]
    for ct in acceptable:
        m = match_accept(ctype, ct)
        if m:
            return m

    return None

def _qvalue(qstr):
    try:
        q = float(qstr)
    except ValueError:
        return 1.0
    if math.isnan(q) or q < 0.0 or q > 1.0:
        return 1.0
    return q

def parse_accept(accepts):
    """
    split the given Accept header value(s) into a list of (media-type, q-value) pairs, preserving
    the order given.  A q-value that cannot be parsed as a number between 0 and 1 is taken to be 1.
    :param accepts:  the HTTP Accept request header value.  This can be given either as a str or
                     a list of str.
                     :type accepts: str or list of str
    """
    if isinstance(accepts, str):
        accepts = [accepts]

    out = []
    for a in accepts:
        for label in a.split(','):
            label = label.strip()
            if not label:
                continue
            q = 1.0
            m = _q_re.search(label)
            if m:
                q = _qvalue(m.group(1))
            mt = media_type(label)
            if mt:
                out.append((mt, q))
    return out

def order_accepts(accepts):
    """
    order the given accept values according to their q-value.  Values with equal q-values
    retain the order they were given in, and values with q=0 (i.e. explicitly refused) are
    dropped.
    :param accepts:  the list of accept values with their q-values attached.  This can be given either
                     as a str or a list of str, each representing the value of the HTTP Accept request
                     header value.
                     :type accepts: str or list of str
    :return:  a list of the mime types in order of q-value.  (The q-values will be dropped.)
    """
    accepts = parse_accept(accepts)
    accepts.sort(key=lambda a: a[1], reverse=True)
    return [a[0] for a in accepts if a[1] > 0]

def get_header(headers, name, default=None):
    """
    return the value of a named request header, matching the name case-insensitively.
    :param headers:  the request headers given either as a dictionary or as a list of
                     name-value pairs.
    :param str name: the header name (e.g. "Content-Type")
    """
    if not headers:
        return default
    items = headers.items() if isinstance(headers, Mapping) else headers
    name = name.lower()
    for key, val in items:
        if key.lower() == name:
            return val
    return default
