import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from app.core.auth import create_access_token
from app.models.group import Group
from app.models.payment import AmountEntry, Payment
from app.models.user import User
from app.services import group_service, ledger_edit, notification_service, settlement_service


ALICE = "a0000000000000000000000a"
BOB = "b0000000000000000000000b"
CHARLIE = "c0000000000000000000000c"
OUTSIDER = "f0000000000000000000000f"


def make_payment(group_id: str, creditors=(), debtors=(), title: str = "Dinner") -> Payment:
    """Build a payment from (user, amount) pairs."""
    return Payment(
        group_id=group_id,
        title=title,
        creditors=[AmountEntry(user=user, amount=amount) for user, amount in creditors],
        debtors=[AmountEntry(user=user, amount=amount) for user, amount in debtors],
    )


class InMemoryGroupRepository:
    def __init__(self):
        self.groups = {}

    async def create_group(self, group):
        self.groups[group.id] = group.model_copy(deep=True)
        return group

    async def get_group(self, group_id):
        group = self.groups.get(group_id)
        return group.model_copy(deep=True) if group else None

    async def list_groups(self, user_id):
        return [g.model_copy(deep=True) for g in self.groups.values() if user_id in g.participants]

    async def update_group(self, group_id, updates):
        group = self.groups.get(group_id)
        if not group:
            return None
        self.groups[group_id] = group.model_copy(update=updates, deep=True)
        return self.groups[group_id].model_copy(deep=True)

    async def delete_group(self, group_id):
        return self.groups.pop(group_id, None) is not None


class InMemoryPaymentRepository:
    """Mirrors PaymentRepository, including the version check on save."""

    def __init__(self):
        self.payments = {}
        self.saves = 0
        self.conflicts_to_inject = 0

    async def create_payment(self, payment):
        self.payments[payment.id] = payment.model_copy(deep=True)
        return payment

    async def get_payment(self, payment_id):
        payment = self.payments.get(payment_id)
        return payment.model_copy(deep=True) if payment else None

    async def list_by_group(self, group_id):
        return [p.model_copy(deep=True) for p in self.payments.values() if p.group_id == group_id]

    async def save_payment(self, payment):
        stored = self.payments.get(payment.id)
        if self.conflicts_to_inject:
            # someone else saved in between
            self.conflicts_to_inject -= 1
            stored.version += 1
            return False
        if stored is None or stored.version != payment.version:
            return False
        payment.version += 1
        payment.touch()
        self.payments[payment.id] = payment.model_copy(deep=True)
        self.saves += 1
        return True

    async def delete_payment(self, payment_id):
        return self.payments.pop(payment_id, None) is not None

    async def delete_by_group(self, group_id):
        doomed = [pid for pid, p in self.payments.items() if p.group_id == group_id]
        for pid in doomed:
            del self.payments[pid]
        return len(doomed)

class InMemoryNotificationRepository:
    def __init__(self):
        self.notifications = {}

    async def create_notification(self, notification):
        self.notifications[notification.id] = notification.model_copy(deep=True)
        return notification

    async def get_notification(self, notification_id):
        notification = self.notifications.get(notification_id)
        return notification.model_copy(deep=True) if notification else None

    async def list_by_group(self, group_id):
        return [n.model_copy(deep=True) for n in self.notifications.values() if n.group_id == group_id]

    async def delete_notification(self, notification_id):
        return self.notifications.pop(notification_id, None) is not None

    async def delete_by_group(self, group_id):
        doomed = [nid for nid, n in self.notifications.items() if n.group_id == group_id]
        for nid in doomed:
            del self.notifications[nid]
        return len(doomed)


class InMemoryUserRepository:
    def __init__(self, users=()):
        self.users = {user.id: user for user in users}

    async def get_users(self, user_ids):
        return [self.users[uid] for uid in user_ids if uid in self.users]


@pytest.fixture
def group():
    return Group(title="Trip", participants=[ALICE, BOB, CHARLIE])


@pytest.fixture
def mock_db():
    """Mock motor database whose collections return AsyncMocks."""
    db = MagicMock()
    for name in ("users", "groups", "payments", "notifications"):
        collection = MagicMock()
        collection.find_one = AsyncMock()
        collection.insert_one = AsyncMock()
        collection.replace_one = AsyncMock()
        collection.find_one_and_update = AsyncMock()
        collection.delete_one = AsyncMock()
        collection.delete_many = AsyncMock()
        collection.create_index = AsyncMock()
        setattr(db, name, collection)
    db.__getitem__.side_effect = lambda name: getattr(db, name)
    return db


@pytest.fixture
def notification_store():
    return InMemoryNotificationRepository()


@pytest.fixture
def user_directory():
    """Registered profiles for Alice and Bob; Charlie never registered."""
    return InMemoryUserRepository([User(_id=ALICE, name="Alice"), User(_id=BOB, name="Bob")])


@pytest.fixture
def store(monkeypatch, mock_db, group, notification_store, user_directory):
    """Services wired to in-memory repositories holding one group."""
    groups = InMemoryGroupRepository()
    payments = InMemoryPaymentRepository()
    groups.groups[group.id] = group.model_copy(deep=True)

    async def _get_database():
        return mock_db

    for module in (group_service, ledger_edit):
        monkeypatch.setattr(module, "get_database", _get_database)
        monkeypatch.setattr(module, "GroupRepository", lambda db: groups)
        monkeypatch.setattr(module, "PaymentRepository", lambda db: payments)

    monkeypatch.setattr(group_service, "NotificationRepository", lambda db: notification_store)
    monkeypatch.setattr(notification_service, "get_database", _get_database)
    monkeypatch.setattr(notification_service, "NotificationRepository", lambda db: notification_store)
    monkeypatch.setattr(settlement_service, "get_database", _get_database)
    monkeypatch.setattr(settlement_service, "UserRepository", lambda db: user_directory)

    return groups, payments


@pytest_asyncio.fixture
async def stored_payment(store, group):
    """An empty payment stored in the group."""
    _, payments = store
    payment = Payment(group_id=group.id, title="Dinner")
    await payments.create_payment(payment)
    return payment


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(ALICE)}"}
