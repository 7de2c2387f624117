from errtrace import ir
from errtrace.ir import types

NIL = ir.Constant(types.Error)


def diamond() -> ir.Function:
    b = ir.FunctionBuilder.new("a.f", [("c", types.Bool)], [types.Error])
    entry = b.block("entry")
    left = b.function.new_block("left")
    right = b.function.new_block("right")
    done = b.function.new_block("done")

    b.goto(entry)
    b.branch(b.param("c"), left, right)
    b.goto(left)
    b.jump(done)
    b.goto(right)
    b.jump(done)
    b.goto(done)
    b.ret(NIL)
    return b.function


def loop() -> ir.Function:
    b = ir.FunctionBuilder.new("a.f", [("c", types.Bool)], [types.Error])
    entry = b.block("entry")
    header = b.function.new_block("header")
    body = b.function.new_block("body")
    exit = b.function.new_block("exit")
    b.function.new_block("dead")

    b.goto(entry)
    b.jump(header)
    b.goto(header)
    b.branch(b.param("c"), body, exit)
    b.goto(body)
    b.jump(header)
    b.goto(exit)
    b.ret(NIL)
    return b.function


def test_diamond():
    function = diamond()
    entry, left, right, done = function.blocks
    cfg = function.cfg

    assert cfg.entry is entry
    assert cfg.successors[entry] == [left, right]
    assert cfg.successors[done] == []
    assert cfg.predecessors[done] == {left, right}
    assert cfg.dominator_tree == {left: entry, right: entry, done: entry}
    assert cfg.dominees[entry] == [left, right, done]
    assert entry.dominees() == [left, right, done]
    assert left.dominees() == []
    assert cfg.dominates(entry, done)
    assert not cfg.dominates(left, done)


def test_loop():
    function = loop()
    entry, header, body, exit, dead = function.blocks
    cfg = function.cfg

    assert cfg.predecessors[header] == {entry, body}
    assert cfg.dominators[body] == {entry, header, body}
    assert cfg.dominator_tree == {header: entry, body: header, exit: header}
    assert header.dominees() == [body, exit]
    assert dead not in cfg.successors
    assert dead.dominees() == []


def test_recover_block_is_not_part_of_the_graph():
    b = ir.FunctionBuilder.new("a.f", [("c", types.Bool)], [types.Error])
    entry = b.block("entry")
    recover = b.recover_block()
    done = b.function.new_block("done")
    b.goto(entry)
    b.branch(b.param("c"), done, recover)
    b.goto(done)
    b.ret(NIL)
    b.goto(recover)
    b.ret(NIL)

    cfg = b.function.cfg
    assert cfg.successors[entry] == [done]
    assert recover not in cfg.dominators


def test_print():
    text = diamond().cfg.print_str()
    assert "entry -> [left, right]" in text
    assert "left -> [done]" in text
    assert "Dominator tree:" in text
    assert "entry => [left, right, done]" in text
