import ast
import textwrap
from functools import cache
from dataclasses import field, dataclass

import lark

from errtrace.schema import ir as schema
from errtrace.source import SourceInfo
from errtrace.exception import IRParseError

GRAMMAR: str = textwrap.dedent(
    r"""
    unit: _decl*

    _decl: type_decl | global_decl | func_decl

    type_decl: "type" QUALNAME method_set               -> struct_decl
             | "type" QUALNAME "interface" method_set   -> interface_decl
    method_set: "{" (method ("," method)*)? "}"
    method: NAME "(" _type_list? ")" results?           -> value_method
          | "*" NAME "(" _type_list? ")" results?       -> pointer_method
    _type_list: type_expr ("," type_expr)*

    global_decl: "global" QUALNAME ":" type_expr

    func_decl: "func" QUALNAME "(" (param ("," param)*)? ")" results? position? "{" (block | recover_block)* "}"
    param: LOCAL ":" type_expr
    block: NAME ":" _instr*
    recover_block: "!" NAME ":" _instr*

    _instr: assign | store | jump | branch | ret
    assign: LOCAL "=" _expr position?
    store: "store" _operand "->" _operand position?
    jump: "jump" NAME position?
    branch: "if" _operand "then" NAME "else" NAME position?
    ret: "return" (_operand ("," _operand)*)? position?
    position: "at" INT ":" INT

    _expr: make_interface | change_type | phi | call | call_builtin
         | call_dynamic | invoke | extract | lookup | load | alloc
         | field_addr | index_addr | field | index | slice | const | op

    make_interface: "make_interface" _operand ":" type_expr
    change_type: "change_type" _operand ":" type_expr
    phi: "phi" "[" _operand ("," _operand)* "]" ":" type_expr
    call: "call" QUALNAME "(" _args? ")" ":" results
    call_builtin: "call" "builtin" NAME "(" _args? ")" ":" results
    call_dynamic: "call" _operand "(" _args? ")" ":" results
    invoke: "invoke" _operand QUALNAME "(" _args? ")" ":" results
    _args: _operand ("," _operand)*
    extract: "extract" _operand INT (":" type_expr)?
    lookup: "lookup" _operand _operand (":" type_expr)?
    load: "load" _operand (":" type_expr)?
    alloc: "alloc" type_expr
    field_addr: "field_addr" _operand INT ":" type_expr
    index_addr: "index_addr" _operand _operand ":" type_expr
    field: "field" _operand INT ":" type_expr
    index: "index" _operand _operand ":" type_expr
    slice: "slice" _operand ":" type_expr
    const: "const" literal ":" type_expr
    op: "op" NAME _operand* ":" results

    ?literal: "nil"          -> nil_lit
            | ESCAPED_STRING -> string_lit
            | SIGNED_NUMBER  -> number_lit
            | "true"         -> true_lit
            | "false"        -> false_lit

    _operand: LOCAL | GLOBAL

    results: type_expr
           | "(" (type_expr ("," type_expr)*)? ")"

    ?any_type: type_expr
             | "(" (type_expr ("," type_expr)*)? ")"   -> tuple_type

    ?type_expr: QUALNAME                          -> named_type
              | "*" type_expr                     -> pointer_type
              | "[" "]" type_expr                 -> slice_type
              | "map" "[" type_expr "]" type_expr -> map_type

    QUALNAME: /[A-Za-z_][A-Za-z0-9_]*([.\/\-][A-Za-z0-9_]+)*/
    NAME: /[A-Za-z_][A-Za-z0-9_]*/
    LOCAL: /%[A-Za-z0-9_]+/
    GLOBAL: /@[A-Za-z_][A-Za-z0-9_]*([.\/\-][A-Za-z0-9_]+)*/
    COMMENT: /\/\/[^\n]*/

    %import common.INT
    %import common.SIGNED_NUMBER
    %import common.ESCAPED_STRING
    %import common.WS
    %ignore WS
    %ignore COMMENT
    """
)


@cache
def get_parser() -> lark.Lark:
    return lark.Lark(GRAMMAR, start=["unit", "any_type"], propagate_positions=True)


def render_type(tree: lark.Tree | lark.Token) -> str:
    """Type string of a parsed type expression."""
    if isinstance(tree, lark.Token):
        return str(tree)
    if tree.data == "named_type":
        return str(tree.children[0])
    if tree.data == "pointer_type":
        return "*" + render_type(tree.children[0])
    if tree.data == "slice_type":
        return "[]" + render_type(tree.children[0])
    if tree.data == "map_type":
        key, elem = tree.children
        return f"map[{render_type(key)}]{render_type(elem)}"
    if tree.data in ("tuple_type", "results"):
        elems = [render_type(child) for child in tree.children]
        if tree.data == "results" and len(elems) == 1:
            return elems[0]
        return "(" + ", ".join(elems) + ")"
    raise IRParseError(f"unknown type expression {tree.data}")


def parse_type(text: str) -> lark.Tree | lark.Token:
    try:
        return get_parser().parse(text, start="any_type")
    except lark.exceptions.UnexpectedInput as e:
        raise IRParseError(
            f"invalid type {text!r}", SourceInfo(e.line, e.column)
        ) from e


def parse_unit(text: str, file: str | None = None) -> schema.Unit:
    """Parse the textual IR into the interchange schema."""
    try:
        tree = get_parser().parse(text, start="unit")
    except lark.exceptions.UnexpectedInput as e:
        raise IRParseError(
            f"unexpected input: {e.get_context(text).strip()}",
            SourceInfo(e.line, e.column, file),
        ) from e
    return TextLowering(file).visit_unit(tree)


@dataclass
class TextLowering:
    """Turns a parse tree of the textual IR into schema objects."""

    file: str | None = None
    unit: schema.Unit = field(default_factory=schema.Unit)

    def visit(self, tree: lark.Tree):
        return getattr(self, f"visit_{tree.data}", self.default)(tree)

    def default(self, tree: lark.Tree):
        raise IRParseError(
            f"unknown node {tree.data}", SourceInfo.from_lark_tree(tree, self.file)
        )

    def visit_unit(self, tree: lark.Tree) -> schema.Unit:
        self.unit = schema.Unit(file=self.file)
        for child in tree.children:
            self.visit(child)
        return self.unit

    def visit_struct_decl(self, tree: lark.Tree) -> None:
        name, method_set = tree.children
        self.unit.types.append(
            schema.TypeDecl(name=str(name), methods=self.visit(method_set))
        )

    def visit_interface_decl(self, tree: lark.Tree) -> None:
        name, method_set = tree.children
        self.unit.types.append(
            schema.TypeDecl(
                name=str(name), interface=True, methods=self.visit(method_set)
            )
        )

    def visit_method_set(self, tree: lark.Tree) -> list[schema.MethodDecl]:
        return [self.visit(child) for child in tree.children]

    def method(self, tree: lark.Tree, pointer: bool) -> schema.MethodDecl:
        name, *rest = tree.children
        params: list[str] = []
        results: list[str] = []
        for child in rest:
            if child.data == "results":
                results = [render_type(t) for t in child.children]
            else:
                params.append(render_type(child))
        return schema.MethodDecl(
            name=str(name), params=params, results=results, pointer=pointer
        )

    def visit_value_method(self, tree: lark.Tree) -> schema.MethodDecl:
        return self.method(tree, pointer=False)

    def visit_pointer_method(self, tree: lark.Tree) -> schema.MethodDecl:
        return self.method(tree, pointer=True)

    def visit_global_decl(self, tree: lark.Tree) -> None:
        name, typ = tree.children
        self.unit.globals.append(
            schema.GlobalDecl(name=str(name), type=render_type(typ))
        )

    def visit_func_decl(self, tree: lark.Tree) -> None:
        name, *rest = tree.children
        function = schema.Function(name=str(name))
        for child in rest:
            if child.data == "param":
                pname, typ = child.children
                function.params.append(
                    schema.Param(name=str(pname)[1:], type=render_type(typ))
                )
            elif child.data == "results":
                function.results = [render_type(t) for t in child.children]
            elif child.data == "position":
                function.pos = self.visit_position(child)
            elif child.data == "block":
                function.blocks.append(self.visit_block(child))
            elif child.data == "recover_block":
                if function.recover is not None:
                    raise IRParseError(
                        f"{function.name} has more than one recovery block",
                        SourceInfo.from_lark_tree(child, self.file),
                    )
                function.recover = self.visit_block(child)
            else:
                self.default(child)
        if function.pos is None:
            function.pos = self.meta_position(tree)
        self.unit.functions.append(function)

    def visit_block(self, tree: lark.Tree) -> schema.Block:
        label, *instrs = tree.children
        return schema.Block(
            label=str(label), instrs=[self.visit(instr) for instr in instrs]
        )

    visit_recover_block = visit_block

    def visit_position(self, tree: lark.Tree) -> schema.Position:
        line, column = tree.children
        return schema.Position(line=int(line), column=int(column), file=self.file)

    def meta_position(self, tree: lark.Tree) -> schema.Position | None:
        line = getattr(tree.meta, "line", None)
        if line is None:
            return None
        return schema.Position(line=line, column=tree.meta.column, file=self.file)

    def split_position(
        self, children: list
    ) -> tuple[list, schema.Position | None]:
        if children and isinstance(children[-1], lark.Tree):
            if children[-1].data == "position":
                return children[:-1], self.visit_position(children[-1])
        return children, None

    # instructions

    def visit_assign(self, tree: lark.Tree) -> schema.Instruction:
        result, expr, *rest = tree.children
        instr = self.visit(expr)
        instr.result = str(result)[1:]
        if rest:
            instr.pos = self.visit_position(rest[0])
        return instr

    def visit_store(self, tree: lark.Tree) -> schema.Instruction:
        children, pos = self.split_position(tree.children)
        val, addr = children
        return schema.Instruction(op="store", args=[str(val), str(addr)], pos=pos)

    def visit_jump(self, tree: lark.Tree) -> schema.Instruction:
        children, pos = self.split_position(tree.children)
        return schema.Instruction(op="jump", targets=[str(children[0])], pos=pos)

    def visit_branch(self, tree: lark.Tree) -> schema.Instruction:
        children, pos = self.split_position(tree.children)
        cond, then_label, else_label = children
        return schema.Instruction(
            op="if",
            args=[str(cond)],
            targets=[str(then_label), str(else_label)],
            pos=pos,
        )

    def visit_ret(self, tree: lark.Tree) -> schema.Instruction:
        children, pos = self.split_position(tree.children)
        return schema.Instruction(
            op="return",
            args=[str(arg) for arg in children],
            pos=pos or self.meta_position(tree),
        )

    # expressions, `result` and `pos` are filled in by visit_assign

    def typed(self, op: str, tree: lark.Tree, **kwargs) -> schema.Instruction:
        """Expression whose last child is its type and the rest are operands."""
        *args, typ = tree.children
        return schema.Instruction(
            op=op, args=[str(arg) for arg in args], type=render_type(typ), **kwargs
        )

    def visit_make_interface(self, tree: lark.Tree) -> schema.Instruction:
        return self.typed("make_interface", tree)

    def visit_change_type(self, tree: lark.Tree) -> schema.Instruction:
        return self.typed("change_type", tree)

    def visit_phi(self, tree: lark.Tree) -> schema.Instruction:
        return self.typed("phi", tree)

    def visit_slice(self, tree: lark.Tree) -> schema.Instruction:
        return self.typed("slice", tree)

    def visit_index_addr(self, tree: lark.Tree) -> schema.Instruction:
        return self.typed("index_addr", tree)

    def visit_index(self, tree: lark.Tree) -> schema.Instruction:
        return self.typed("index", tree)

    def visit_call(self, tree: lark.Tree) -> schema.Instruction:
        callee, *args, results = tree.children
        return schema.Instruction(
            op="call",
            callee=str(callee),
            args=[str(arg) for arg in args],
            type=render_type(results),
        )

    def visit_call_builtin(self, tree: lark.Tree) -> schema.Instruction:
        instr = self.visit_call(tree)
        instr.op = "call_builtin"
        return instr

    def visit_call_dynamic(self, tree: lark.Tree) -> schema.Instruction:
        *args, results = tree.children
        return schema.Instruction(
            op="call_dynamic",
            args=[str(arg) for arg in args],
            type=render_type(results),
        )

    def visit_invoke(self, tree: lark.Tree) -> schema.Instruction:
        receiver, method, *args, results = tree.children
        return schema.Instruction(
            op="invoke",
            callee=str(method),
            args=[str(receiver)] + [str(arg) for arg in args],
            type=render_type(results),
        )

    def optionally_typed(self, op: str, tree: lark.Tree) -> schema.Instruction:
        children = list(tree.children)
        typ = None
        if isinstance(children[-1], lark.Tree):
            typ = render_type(children.pop())
        index = None
        args = []
        for child in children:
            if child.type == "INT":
                index = int(child)
            else:
                args.append(str(child))
        return schema.Instruction(op=op, args=args, type=typ, index=index)

    def visit_extract(self, tree: lark.Tree) -> schema.Instruction:
        return self.optionally_typed("extract", tree)

    def visit_lookup(self, tree: lark.Tree) -> schema.Instruction:
        return self.optionally_typed("lookup", tree)

    def visit_load(self, tree: lark.Tree) -> schema.Instruction:
        return self.optionally_typed("load", tree)

    def visit_field_addr(self, tree: lark.Tree) -> schema.Instruction:
        return self.optionally_typed("field_addr", tree)

    def visit_field(self, tree: lark.Tree) -> schema.Instruction:
        return self.optionally_typed("field", tree)

    def visit_alloc(self, tree: lark.Tree) -> schema.Instruction:
        return schema.Instruction(op="alloc", type=render_type(tree.children[0]))

    def visit_const(self, tree: lark.Tree) -> schema.Instruction:
        literal, typ = tree.children
        return schema.Instruction(
            op="const", value=self.literal(literal), type=render_type(typ)
        )

    def visit_op(self, tree: lark.Tree) -> schema.Instruction:
        name, *args, typ = tree.children
        return schema.Instruction(
            op="op",
            callee=str(name),
            args=[str(arg) for arg in args],
            type=render_type(typ),
        )

    def literal(self, tree: lark.Tree):
        if tree.data == "nil_lit":
            return None
        if tree.data == "true_lit":
            return True
        if tree.data == "false_lit":
            return False
        token = tree.children[0]
        if tree.data == "string_lit":
            return ast.literal_eval(str(token))
        text = str(token)
        if any(c in text for c in ".eE"):
            return float(text)
        return int(text)
