"""
Unit tests for environments, endpoints and the cancellation context
"""

import unittest
import sys
import os
import threading

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from vfd.config import (
    FETCH_TOKEN_PRODUCTION_URL,
    REGISTER_TESTING_URL,
    SUBMIT_RECEIPT_PRODUCTION_URL,
    SUBMIT_REPORT_TESTING_URL,
    Action,
    Env,
    receipt_link,
    request_url,
)
from vfd.context import Context, ContextCancelled, DeadlineExceeded


class TestEnv(unittest.TestCase):

    def test_parse_aliases(self):
        cases = [
            ("prod", Env.PROD),
            ("Production", Env.PROD),
            ("test", Env.TEST),
            ("testing", Env.TEST),
            (" staging ", Env.STAGING),
            ("dev", Env.DEV),
            ("development", Env.DEV),
            ("whatever", Env.DEV),
            ("", Env.DEV),
            (Env.PROD, Env.PROD),
        ]
        for value, expected in cases:
            with self.subTest(value=value):
                self.assertIs(Env.parse(value), expected)

    def test_str(self):
        self.assertEqual(str(Env.PROD), "production")
        self.assertEqual(str(Env.STAGING), "staging")


class TestRequestURL(unittest.TestCase):

    def test_production(self):
        self.assertEqual(request_url(Env.PROD, Action.SUBMIT_RECEIPT), SUBMIT_RECEIPT_PRODUCTION_URL)
        self.assertEqual(request_url("prod", "token"), FETCH_TOKEN_PRODUCTION_URL)

    def test_everything_else_uses_testing_server(self):
        for env in [Env.TEST, Env.STAGING, Env.DEV, "nonsense"]:
            with self.subTest(env=env):
                self.assertEqual(request_url(env, Action.REGISTER), REGISTER_TESTING_URL)
                self.assertEqual(request_url(env, Action.SUBMIT_REPORT), SUBMIT_REPORT_TESTING_URL)

    def test_unknown_action(self):
        self.assertEqual(request_url(Env.PROD, "refund"), "")

    def test_receipt_link(self):
        self.assertEqual(
            receipt_link(Env.PROD, "7E2F4C", 1024, "09:05:33"),
            "https://verify.tra.go.tz/7E2F4C1024_090533",
        )


class TestContext(unittest.TestCase):

    def test_background_never_done(self):
        ctx = Context.background()
        self.assertIsNone(ctx.err())
        self.assertFalse(ctx.done())
        self.assertIsNone(ctx.remaining())
        self.assertEqual(ctx.remaining(70), 70)

    def test_cancel(self):
        ctx = Context.background().with_cancel()
        ctx.cancel()
        self.assertIsInstance(ctx.err(), ContextCancelled)
        self.assertTrue(ctx.done())

    def test_cancel_from_another_thread(self):
        ctx = Context.background().with_cancel()
        worker = threading.Thread(target=ctx.cancel)
        worker.start()
        worker.join()
        self.assertIsInstance(ctx.err(), ContextCancelled)

    def test_parent_cancel_reaches_children(self):
        parent = Context.background().with_cancel()
        child = parent.with_timeout(60)
        parent.cancel()
        self.assertIsInstance(child.err(), ContextCancelled)

    def test_child_cancel_does_not_reach_parent(self):
        parent = Context.background().with_cancel()
        child = parent.with_cancel()
        child.cancel()
        self.assertIsNone(parent.err())

    def test_deadline(self):
        ctx = Context(timeout=0)
        self.assertIsInstance(ctx.err(), DeadlineExceeded)
        self.assertEqual(ctx.remaining(70), 0.0)

    def test_child_keeps_earlier_parent_deadline(self):
        parent = Context(timeout=5)
        child = parent.with_timeout(60)
        self.assertEqual(child.deadline, parent.deadline)
        self.assertLessEqual(child.remaining(), 5)

    def test_on_cancel_runs_callbacks_once(self):
        ctx = Context.background().with_cancel()
        calls = []
        ctx.on_cancel(lambda: calls.append("first"))
        ctx.on_cancel(lambda: calls.append("second"))

        ctx.cancel()
        ctx.cancel()

        self.assertEqual(calls, ["first", "second"])

    def test_on_cancel_after_cancel_runs_at_once(self):
        ctx = Context.background().with_cancel()
        ctx.cancel()
        calls = []
        ctx.on_cancel(lambda: calls.append("late"))
        self.assertEqual(calls, ["late"])

    def test_parent_cancel_runs_child_callbacks(self):
        parent = Context.background().with_cancel()
        child = parent.with_timeout(60)
        calls = []
        child.on_cancel(lambda: calls.append("child"))

        parent.cancel()

        self.assertEqual(calls, ["child"])

    def test_removed_callback_does_not_run(self):
        ctx = Context.background().with_cancel()
        calls = []
        remove = ctx.on_cancel(lambda: calls.append("removed"))
        remove()
        ctx.cancel()
        self.assertEqual(calls, [])

    def test_cancelled_child_detaches_from_parent(self):
        parent = Context.background()
        child = parent.with_cancel()
        self.assertEqual(len(parent._callbacks), 1)
        child.cancel()
        self.assertEqual(parent._callbacks, [])


if __name__ == '__main__':
    unittest.main()
