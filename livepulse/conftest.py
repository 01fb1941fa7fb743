import pytest
from django.contrib.auth import get_user_model

from livepulse.live.models import LiveSession

TEST_PASSWORD = "password"  # noqa: S105


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        username="moderator", email="moderator@example.com", password=TEST_PASSWORD
    )


@pytest.fixture
def live_session(db):
    return LiveSession.objects.create(title="Fixture session", code="FIXTURE")
