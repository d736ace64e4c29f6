import unittest

from treebf import (
    Instruction,
    NodeKind,
    ParseError,
    format_tree,
    index_nodes,
    normalize,
    parse,
    scan,
)
from treebf.parser import Parser, check_brackets


class LexerTests(unittest.TestCase):
    def test_scan_maps_every_symbol(self) -> None:
        tokens = scan("><+-.,[]")
        self.assertEqual(
            tokens,
            [
                Instruction.MOVE_RIGHT,
                Instruction.MOVE_LEFT,
                Instruction.INCREMENT,
                Instruction.DECREMENT,
                Instruction.OUTPUT,
                Instruction.INPUT,
                Instruction.LOOP_START,
                Instruction.LOOP_END,
            ],
        )

    def test_scan_drops_comments_and_keeps_order(self) -> None:
        source = "add two: ++ then print it!\n> x . [loop] done"
        tokens = scan(source)
        self.assertLessEqual(len(tokens), len(source))
        self.assertEqual("".join(token.value for token in tokens), "++>.[]")

    def test_scan_empty_source(self) -> None:
        self.assertEqual(scan(""), [])
        self.assertEqual(scan("no instructions here"), [])

    def test_normalize(self) -> None:
        self.assertEqual(normalize("a+b-c[d]e"), "+-[]")


class BracketCheckTests(unittest.TestCase):
    def test_balanced_sequences_pass(self) -> None:
        for source in ("", "[]", "[[]]", "[][]", "+[->[+]<]"):
            with self.subTest(source=source):
                check_brackets(scan(source))

    def test_unbalanced_sequences_fail(self) -> None:
        for source in ("[", "]", "][", "[[]", "[]]", "+[", "]+["):
            with self.subTest(source=source):
                with self.assertRaises(ParseError) as ctx:
                    parse(source)
                self.assertEqual(str(ctx.exception), "missing bracket")

    def test_parse_error_is_syntax_error(self) -> None:
        with self.assertRaises(SyntaxError):
            parse("[")


class TreeBuilderTests(unittest.TestCase):
    def test_flat_program(self) -> None:
        root = parse("+>.")
        self.assertIs(root.kind, NodeKind.PROGRAM)
        self.assertIs(root.instruction, Instruction.NO_OP)
        self.assertEqual(
            [child.instruction for child in root.children],
            [Instruction.INCREMENT, Instruction.MOVE_RIGHT, Instruction.OUTPUT],
        )
        self.assertTrue(all(child.kind is NodeKind.OPERATOR for child in root.children))
        self.assertEqual([child.position for child in root.children], [0, 1, 2])

    def test_nested_loops(self) -> None:
        root = parse("+[>[-]<]")
        self.assertEqual(len(root.children), 2)
        loop = root.children[1]
        self.assertIs(loop.kind, NodeKind.LOOP)
        self.assertEqual(loop.position, 1)
        self.assertEqual(
            [child.kind for child in loop.children],
            [NodeKind.OPERATOR, NodeKind.LOOP, NodeKind.OPERATOR],
        )
        inner = loop.children[1]
        self.assertEqual(inner.position, 3)
        self.assertEqual([child.instruction for child in inner.children], [Instruction.DECREMENT])
        self.assertEqual(loop.children[2].position, 6)

    def test_brackets_never_become_operators(self) -> None:
        root = parse("[[+]-[]]")
        for node in root.iter_nodes():
            if node.kind is NodeKind.OPERATOR:
                self.assertNotIn(
                    node.instruction, (Instruction.LOOP_START, Instruction.LOOP_END)
                )
            else:
                self.assertIs(node.kind, NodeKind.LOOP)

    def test_operator_count_matches_non_bracket_tokens(self) -> None:
        for source in ("", "+", "[]", "+[->+<]>.", "[[[,]]]..", "a[b+c]d>e<"):
            with self.subTest(source=source):
                tokens = scan(source)
                expected = sum(
                    1
                    for token in tokens
                    if token not in (Instruction.LOOP_START, Instruction.LOOP_END)
                )
                self.assertEqual(parse(source).operator_count(), expected)

    def test_parse_accepts_tokens(self) -> None:
        root = parse([Instruction.LOOP_START, Instruction.DECREMENT, Instruction.LOOP_END])
        self.assertEqual(len(root.children), 1)
        self.assertEqual(root.children[0].operator_count(), 1)

    def test_parser_build_without_check(self) -> None:
        root = Parser().build(scan("[+]+"))
        self.assertEqual([child.kind for child in root.children], [NodeKind.LOOP, NodeKind.OPERATOR])
        self.assertEqual(root.children[1].position, 3)

    def test_end_position(self) -> None:
        self.assertEqual(parse("").end_position(), 0)
        self.assertEqual(parse("+-").end_position(), 2)
        self.assertEqual(parse("+[]").end_position(), 3)
        self.assertEqual(parse("+[-[>]]").end_position(), 7)
        self.assertEqual(parse("+[-[>]]").children[1].children[1].end_position(), 6)

    def test_format_tree(self) -> None:
        rendered = format_tree(parse("+[->+<]"))
        self.assertEqual(
            rendered.splitlines(),
            [
                "+ @0",
                "loop @1",
                "    - @2",
                "    > @3",
                "    + @4",
                "    < @5",
            ],
        )

    def test_format_tree_marks_current_node_and_breakpoints(self) -> None:
        root = parse("+[->+<]")
        nodes = index_nodes(root)
        rendered = format_tree(root, current=nodes[3], breakpoints={1, 5})
        self.assertEqual(
            rendered.splitlines(),
            [
                "    + @0",
                "  * loop @1",
                "        - @2",
                "=>      > @3",
                "        + @4",
                "  *     < @5",
            ],
        )

    def test_index_nodes_skips_loop_ends(self) -> None:
        nodes = index_nodes(parse("+[-[>]]."))
        self.assertEqual(sorted(nodes), [0, 1, 2, 3, 4, 7])
        self.assertIs(nodes[3].kind, NodeKind.LOOP)
        self.assertIs(nodes[4].instruction, Instruction.MOVE_RIGHT)
        self.assertEqual(index_nodes(parse("")), {})


if __name__ == "__main__":
    unittest.main()
