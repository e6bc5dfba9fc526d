"""
Tests for UserRepository against an in-memory database.
"""
import pytest

from citizen_reports.domain.exceptions import ConflictError, NotFoundError, NoRowsAffectedError
from citizen_reports.infrastructure import models
from citizen_reports.infrastructure.repositories import UserRepository


@pytest.fixture
def repo(test_db):
    return UserRepository(test_db)


@pytest.mark.db_required
class TestLookups:

    def test_find_by_username_matches_email_or_username(self, repo, make_user):
        user = make_user()

        assert repo.find_user_by_username("user1").id == user.id
        assert repo.find_user_by_username("user1@example.com").id == user.id

    def test_missing_user_raises_not_found(self, repo):
        with pytest.raises(NotFoundError):
            repo.find_user_by_id(42)
        with pytest.raises(NotFoundError):
            repo.find_user_by_email("nobody@example.com")
        with pytest.raises(NotFoundError):
            repo.find_user_by_mac_address("AA:BB:CC:DD:EE:FF")

    def test_uniqueness_checks(self, repo, make_user):
        make_user(telephone="+2348000000009")

        with pytest.raises(ConflictError):
            repo.is_email_exist("user1@example.com")
        with pytest.raises(ConflictError):
            repo.is_username_exist("user1")
        with pytest.raises(ConflictError):
            repo.is_phone_exist("+2348000000009")

        repo.is_email_exist("fresh@example.com")

    def test_create_user_with_mac_address_is_find_or_create(self, repo, test_db):
        first = repo.create_user_with_mac_address("00:1B:44:11:3A:B7")
        second = repo.create_user_with_mac_address("00:1B:44:11:3A:B7")

        assert first.id == second.id
        assert test_db.query(models.User).count() == 1
        assert repo.find_user_by_mac_address("00:1B:44:11:3A:B7").id == first.id

    def test_create_user_rejects_none(self, repo):
        with pytest.raises(ValueError):
            repo.create_user(None)


@pytest.mark.db_required
class TestUpdates:

    def test_online_status(self, repo, test_db, make_user):
        user = make_user()

        repo.update_user_online_status(user.id, True)
        test_db.refresh(user)
        assert user.online is True

        repo.set_user_offline(user.id)
        test_db.refresh(user)
        assert user.online is False

    def test_online_status_for_missing_user(self, repo):
        with pytest.raises(NoRowsAffectedError):
            repo.update_user_online_status(404, True)

    def test_update_password_by_email(self, repo, test_db, make_user):
        user = make_user()

        repo.update_password("new-hash", user.email)

        test_db.refresh(user)
        assert user.hashed_password == "new-hash"

    def test_verify_email_activates_and_revokes_token(self, repo, test_db, make_user):
        user = make_user()

        repo.verify_email(user.email, "verification-token")

        test_db.refresh(user)
        assert user.is_email_active is True
        assert repo.is_token_in_blacklist("verification-token")

    def test_edit_profile(self, repo, make_user):
        user = make_user()

        updated = repo.edit_user_profile(user.id, fullname="New Name")

        assert updated.fullname == "New Name"
        assert updated.username == "user1"

    def test_create_user_image_records_thumbnail(self, repo, test_db, make_user):
        user = make_user(thumbnail_url="https://img.example.com/1_me.png")

        image = repo.create_user_image(user)

        assert image.user_id == user.id
        assert image.thumbnail_url == "https://img.example.com/1_me.png"


@pytest.mark.db_required
class TestBlacklist:

    def test_tokens_are_trimmed(self, repo, test_db):
        repo.add_to_blacklist("  abc.def.ghi \n")

        assert test_db.query(models.Blacklist).one().token == "abc.def.ghi"
        assert repo.is_token_in_blacklist("abc.def.ghi")
        assert repo.is_token_in_blacklist(" abc.def.ghi ")

    def test_unknown_token(self, repo):
        assert repo.is_token_in_blacklist("never-seen") is False


@pytest.mark.db_required
class TestCounts:

    def test_counts(self, repo, make_user):
        make_user(online=True)
        make_user(lga_name="Surulere")
        make_user()

        assert repo.get_total_user_count() == 3
        assert repo.get_online_user_count() == 1
        assert repo.get_registered_users_count_by_lga("Ikeja") == 2
        assert repo.get_registered_users_count_by_lga("Epe") == 0
        assert [u.username for u in repo.get_all_users()] == ["user1", "user2", "user3"]
