import os
import unittest

from helpers import RecordingLookup, temp_dir, write_script
from vim_stack_analyzer.parser import FrameRef
from vim_stack_analyzer.resolver import (
    FrameResolver,
    ResolvedFrame,
    RoutineKind,
    RoutineRef,
    declaration_pattern,
    short_name,
)

SCRIPT = [
    "\" helpers",
    "let s:count = 0",
    "",
    "function! s:Helper() abort",
    "  let s:count += 1",
    "  call Missing()",
    "endfunction",
    "",
    "function FuncA()",
    "  echo s:count",
    "endfunction",
]


class TestRoutineRef(unittest.TestCase):
    def test_numeric_names_are_numbered(self):
        self.assertEqual(RoutineRef.from_name("42"), RoutineRef(RoutineKind.NUMBERED, "42"))
        self.assertEqual(RoutineRef.from_name("{42}"), RoutineRef(RoutineKind.NUMBERED, "42"))
        self.assertEqual(RoutineRef.from_name("FuncA").kind, RoutineKind.NAMED)
        self.assertEqual(RoutineRef.from_name("<SNR>12_Run").kind, RoutineKind.NAMED)

    def test_short_name(self):
        self.assertEqual(short_name("<SNR>12_Helper"), ("Helper", True))
        self.assertEqual(short_name("s:Helper"), ("Helper", True))
        self.assertEqual(short_name("foo#bar"), ("foo#bar", False))

    def test_declaration_pattern(self):
        private = declaration_pattern("<SNR>12_Helper")
        self.assertTrue(private.match("function! s:Helper() abort"))
        self.assertTrue(private.match("  fu <SID>Helper(a, b)"))
        self.assertTrue(private.match("def s:Helper(): number"))
        self.assertFalse(private.match("function Helper()"))
        self.assertFalse(private.match("function! s:HelperTwo()"))

        public = declaration_pattern("FuncA")
        self.assertTrue(public.match("function FuncA()"))
        self.assertTrue(public.match("function! g:FuncA() range"))
        self.assertFalse(public.match("call FuncA()"))


class TestFrameResolver(unittest.TestCase):
    def setUp(self):
        self._tmp = temp_dir()
        self.tmp = self._tmp.name
        self.script = write_script(self.tmp, "plugin/t.vim", SCRIPT)

    def tearDown(self):
        self._tmp.cleanup()

    def test_stated_line_is_used(self):
        lookup = RecordingLookup(named={"FuncA": ["function FuncA()", f"    Last set from {self.script} line 5"]})
        resolved = FrameResolver(lookup).resolve(FrameRef("FuncA", 12, "FuncA[12]"), 0)
        self.assertEqual(resolved, ResolvedFrame(0, "#0 FuncA[12]", self.script, 17))

    def test_declaration_scan_without_stated_line(self):
        lookup = RecordingLookup(named={
            "<SNR>7_Helper": ["function <SNR>7_Helper() abort", f"    Last set from {self.script}"],
        })
        resolved = FrameResolver(lookup).resolve(FrameRef("<SNR>7_Helper", 3, "<SNR>7_Helper[3]"), 2)
        self.assertEqual(resolved.absolute_line, 4 + 3)
        self.assertEqual(resolved.label, "#2 <SNR>7_Helper[3]")

    def test_both_strategies_agree(self):
        stated = RecordingLookup(named={"FuncA": ["function FuncA()", f"Last set from {self.script} line 9"]})
        scanned = RecordingLookup(named={"FuncA": ["function FuncA()", f"Last set from {self.script}"]})
        frame = FrameRef("FuncA", 1, "FuncA[1]")
        self.assertEqual(FrameResolver(stated).resolve(frame, 0), FrameResolver(scanned).resolve(frame, 0))

    def test_numbered_function_uses_numbered_lookup(self):
        lookup = RecordingLookup(numbered={"42": ["function 42(...) dict", f"Last set from {self.script} line 9"]})
        resolved = FrameResolver(lookup).resolve(FrameRef("42", 2, "42[2]"), 0)
        self.assertEqual(lookup.calls, [("describe_numbered", "42")])
        self.assertEqual(resolved.absolute_line, 11)

    def test_numbered_function_without_line_is_dropped(self):
        lookup = RecordingLookup(numbered={"42": ["function 42(...) dict", f"Last set from {self.script}"]})
        self.assertIsNone(FrameResolver(lookup).resolve(FrameRef("42", 2, "42[2]"), 0))

    def test_unknown_function_is_dropped(self):
        lookup = RecordingLookup()
        self.assertIsNone(FrameResolver(lookup).resolve(FrameRef("Nope", 1, "Nope[1]"), 0))
        self.assertEqual(lookup.calls, [("describe", "Nope")])

    def test_one_line_description_is_dropped(self):
        lookup = RecordingLookup(named={"FuncA": ["function FuncA()"]})
        self.assertIsNone(FrameResolver(lookup).resolve(FrameRef("FuncA", 1, "FuncA[1]"), 0))

    def test_missing_file_is_dropped(self):
        missing = os.path.join(self.tmp, "gone.vim")
        lookup = RecordingLookup(named={"FuncA": ["function FuncA()", f"Last set from {missing} line 3"]})
        self.assertIsNone(FrameResolver(lookup).resolve(FrameRef("FuncA", 1, "FuncA[1]"), 0))

    def test_description_without_source_is_dropped(self):
        lookup = RecordingLookup(named={"FuncA": ["function FuncA()", "   endfunction"]})
        self.assertIsNone(FrameResolver(lookup).resolve(FrameRef("FuncA", 1, "FuncA[1]"), 0))

    def test_declaration_not_in_file_is_dropped(self):
        lookup = RecordingLookup(named={"Other": ["function Other()", f"Last set from {self.script}"]})
        self.assertIsNone(FrameResolver(lookup).resolve(FrameRef("Other", 1, "Other[1]"), 0))

    def test_frame_without_line_is_skipped(self):
        lookup = RecordingLookup(named={"FuncA": ["function FuncA()", f"Last set from {self.script} line 5"]})
        resolver = FrameResolver(lookup)
        self.assertIsNone(resolver.resolve(FrameRef("FuncA", 0, "FuncA[abc]"), 0))
        self.assertIsNone(resolver.resolve(FrameRef("BufRead Autocommands for \"*.txt\"", 0, "BufRead Autocommands for \"*.txt\""), 0))
        self.assertEqual(lookup.calls, [])

    def test_file_reference_needs_no_lookup(self):
        lookup = RecordingLookup()
        resolved = FrameResolver(lookup).resolve(FrameRef(self.script, 6, f"{self.script}[6]"), 1)
        self.assertEqual(resolved, ResolvedFrame(1, "", self.script, 6))
        self.assertEqual(lookup.calls, [])

    def test_resolution_is_repeatable(self):
        lookup = RecordingLookup(named={"FuncA": ["function FuncA()", f"Last set from {self.script}"]})
        resolver = FrameResolver(lookup)
        frame = FrameRef("FuncA", 2, "FuncA[2]")
        self.assertEqual(resolver.resolve(frame, 0), resolver.resolve(frame, 0))


if __name__ == "__main__":
    unittest.main()
