"""
Tests for remote command batches.
"""
import unittest

from webpublish.errors import ExecutionError
from webpublish.operations.executor import join_commands, run_commands

from fakes import ScriptedManager


def _quiet(msg):
    pass


class TestRunCommands(unittest.TestCase):

    def test_empty_list_is_a_no_op(self):
        mgr = ScriptedManager()
        messages = []
        self.assertEqual(run_commands(mgr, [], progress=messages.append), "")
        self.assertEqual(mgr.scripts, [])
        self.assertIn("[exec] no commands need to run", messages)

    def test_commands_sent_as_one_script(self):
        mgr = ScriptedManager(("ok\n", "", 0))
        out = run_commands(mgr, ["cd /srv", "ls"], progress=_quiet)
        self.assertEqual(out, "ok\n")
        self.assertEqual(mgr.scripts, ["cd /srv\nls"])
        self.assertEqual(join_commands(["a", "b"]), "a\nb")

    def test_stderr_fails_even_with_zero_exit(self):
        mgr = ScriptedManager(("", "warning: something\n", 0))
        with self.assertRaises(ExecutionError) as ctx:
            run_commands(mgr, ["true"], progress=_quiet)
        self.assertIn("warning: something", ctx.exception.stderr)
        self.assertEqual(ctx.exception.exit_status, 0)

    def test_nonzero_exit_fails(self):
        mgr = ScriptedManager(("", "", 3))
        with self.assertRaises(ExecutionError) as ctx:
            run_commands(mgr, ["false"], progress=_quiet)
        self.assertEqual(ctx.exception.exit_status, 3)

    def test_transport_error_wrapped(self):
        class Broken:
            def exec_channel(self, cmd, timeout=None):
                raise OSError("channel closed")

        with self.assertRaises(ExecutionError):
            run_commands(Broken(), ["true"], progress=_quiet)


if __name__ == "__main__":
    unittest.main()
