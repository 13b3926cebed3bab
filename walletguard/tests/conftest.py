import os
import tempfile
from concurrent.futures import Future
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

_TEST_DB = os.path.join(tempfile.mkdtemp(prefix="walletguard-tests-"), "test.db")
os.environ["DATABASE_URL"] = os.getenv("WALLETGUARD_TEST_DATABASE_URL", f"sqlite:///{_TEST_DB}")
os.environ["SEED_DEMO_DATA"] = "false"
os.environ["ADVISOR_ENABLED"] = "false"

from walletguard.app import create_app  # noqa: E402
from walletguard.db.session import engine, get_session  # noqa: E402
from walletguard.models import Base, TransactionLog, WalletAccount  # noqa: E402
from walletguard.services import advisor as advisor_module  # noqa: E402
from walletguard.services import history as history_module  # noqa: E402
from walletguard.services.advisor import AdvisorOpinion, AdvisorStatus, RiskAdvisor  # noqa: E402

# Wednesday noon, far from the unusual-hours and weekend rules.
NOON = datetime(2024, 3, 6, 12, 0, 0)


class StubAdvisor:
    """Returns a fixed opinion without any network traffic."""

    def __init__(self, opinion):
        self.opinion = opinion

    def submit(self, context):
        future = Future()
        future.set_result(self.opinion)
        return future

    def collect(self, future, started=None):
        return future.result()


@pytest.fixture(autouse=True)
def disabled_advisor():
    advisor = RiskAdvisor(enabled=False)
    advisor_module.set_advisor(advisor)
    yield advisor
    advisor_module.set_advisor(None)
    advisor.shutdown()


@pytest.fixture()
def fixed_advisor():
    def install(score: int, confidence: int):
        stub = StubAdvisor(
            AdvisorOpinion(
                status=AdvisorStatus.OK,
                risk_score=score,
                confidence=confidence,
                reasoning="stubbed",
                red_flags=["stub"],
            )
        )
        advisor_module.set_advisor(stub)
        return stub

    return install


@pytest.fixture()
def session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = get_session()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(session):
    app = create_app()
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


@pytest.fixture()
def make_account(session):
    def create(user_id: str, balance, created_at=None):
        acct = WalletAccount(
            user_id=user_id,
            display_name=user_id,
            balance=Decimal(str(balance)),
            created_at=created_at or NOON - timedelta(days=365),
        )
        session.add(acct)
        session.commit()
        return acct

    return create


@pytest.fixture()
def add_history(session):
    """Daily completed transfers of ``amount`` going back ``days`` days from ``as_of``."""

    def create(user_id: str, amount, days: int = 10, as_of=NOON, recipient_id="user-history", tx_type="transfer_sent"):
        rows = []
        for day in range(1, days + 1):
            rows.append(
                TransactionLog(
                    tx_reference=f"TX-HIST-{user_id}-{day}",
                    user_id=user_id,
                    recipient_id=recipient_id if tx_type in ("transfer_sent", "payment") else None,
                    type=tx_type,
                    amount=Decimal(str(amount)),
                    status="completed",
                    tx_datetime=as_of - timedelta(days=day),
                )
            )
        session.add_all(rows)
        session.commit()
        return rows

    return create


@pytest.fixture()
def balance_of(session):
    def read(user_id: str):
        session.expire_all()
        acct = session.query(WalletAccount).filter_by(user_id=user_id).one_or_none()
        return acct.balance if acct else None

    return read


@pytest.fixture()
def server_clock(monkeypatch):
    """Pins the time the server stamps on submitted transactions."""

    def pin(moment: datetime):
        monkeypatch.setattr(history_module, "utcnow", lambda: moment)

    pin(NOON)
    return pin
