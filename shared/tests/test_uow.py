from unittest.mock import MagicMock

from django.test import TestCase

from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.value_objects import Money

from apps.finances.domain.events import WalletToppedUp
from apps.finances.domain.payments import Wallet


class DjangoUnitOfWorkTests(TestCase):

    def setUp(self):
        self.bus = MessageBus()
        self.handler = MagicMock(__name__='handler')
        self.bus.register_event_handler(WalletToppedUp, self.handler)

    def test_events_published_after_commit(self):
        wallet = Wallet(id='wallet')

        with self.captureOnCommitCallbacks(execute=True):
            with DjangoUnitOfWork(bus=self.bus) as uow:
                wallet.credit(Money('100'))
                uow.collect_events(wallet)
                self.handler.assert_not_called()

        [event] = self.handler.call_args.args
        self.assertEqual(event.balance, Money('100'))
        self.assertEqual(wallet.events, [])

    def test_events_discarded_on_rollback(self):
        wallet = Wallet(id='wallet')

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(RuntimeError):
                with DjangoUnitOfWork(bus=self.bus) as uow:
                    wallet.credit(Money('100'))
                    uow.collect_events(wallet)
                    raise RuntimeError("boom")

        self.assertEqual(callbacks, [])
        self.handler.assert_not_called()

    def test_handler_errors_do_not_stop_other_handlers(self):
        failing = MagicMock(__name__='failing', side_effect=RuntimeError("handler bug"))
        bus = MessageBus()
        bus.register_event_handler(WalletToppedUp, failing)
        bus.register_event_handler(WalletToppedUp, self.handler)

        with self.assertLogs('shared.application.message_bus', level='ERROR'):
            bus.publish_events([WalletToppedUp(amount=Money('1'))])

        self.handler.assert_called_once()
