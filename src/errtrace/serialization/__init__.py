from errtrace.serialization.lowering import (
    loads as loads,
    load_unit as load_unit,
    lower_unit as lower_unit,
)
