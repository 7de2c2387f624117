from errtrace.parse.grammar import (
    GRAMMAR as GRAMMAR,
    parse_type as parse_type,
    parse_unit as parse_unit,
    render_type as render_type,
)
