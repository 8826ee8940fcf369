"""Unit tests for auth/service.py -- AuthService login, registration and bearer resolution.

Covers:
- Login: missing fields, identical failure for unknown user vs wrong password, token contents
- Registration: first missing field in declared order, policy order, stat validation,
  taken usernames, password stored only as a hash
- Bearer resolution: scheme handling, invalid tokens, no store round-trip
- current_user() / update_stats() on top of resolution
"""

import pytest

from auth.exceptions import (
    AuthFailure,
    InvalidField,
    MissingField,
    PolicyViolation,
    StoreUnavailable,
    Unauthenticated,
    UsernameTaken,
)
from auth.models import Identity
from auth.passwords import verify_password
from auth.service import AuthService
from auth.tokens import TokenService

NEW_USER = {"username": "fresh", "password": "a1b2c3d4", "age": 30, "height": 170, "userweight": 160}


class TestLogin:
    @pytest.mark.parametrize("fields", [{}, {"username": "test-user-1"}, {"password": "password1"}])
    def test_missing_field(self, auth_service, fields):
        with pytest.raises(MissingField) as excinfo:
            auth_service.login(fields)
        assert excinfo.value.message == "Missing a field in request body"

    def test_null_counts_as_missing(self, auth_service):
        with pytest.raises(MissingField):
            auth_service.login({"username": "test-user-1", "password": None})

    def test_unknown_user_and_wrong_password_are_identical(self, auth_service):
        with pytest.raises(AuthFailure) as unknown:
            auth_service.login({"username": "user-not", "password": "existy"})
        with pytest.raises(AuthFailure) as wrong:
            auth_service.login({"username": "test-user-1", "password": "existy"})
        assert unknown.value.message == wrong.value.message == "Incorrect username or password"

    def test_non_string_credentials_fail_generically(self, auth_service):
        with pytest.raises(AuthFailure):
            auth_service.login({"username": "test-user-1", "password": 12345678})

    def test_success_issues_token_for_user(self, auth_service, tokens):
        token = auth_service.login({"username": "test-user-1", "password": "password1"})
        claims = tokens.verify(token)
        assert claims.subject == "test-user-1"
        assert claims.payload == {"id": 1}


class TestRegister:
    @pytest.mark.parametrize("field", ["username", "password", "age", "height", "userweight"])
    def test_missing_each_field(self, auth_service, field):
        fields = {k: v for k, v in NEW_USER.items() if k != field}
        with pytest.raises(MissingField) as excinfo:
            auth_service.register(fields)
        assert excinfo.value.field == field
        assert excinfo.value.message == f"Missing '{field}' in request body"

    def test_first_missing_field_in_declared_order(self, auth_service):
        # Password and height are both absent; password is declared first.
        with pytest.raises(MissingField) as excinfo:
            auth_service.register({"username": "x", "age": 34, "userweight": 100})
        assert excinfo.value.field == "password"

    def test_empty_body(self, auth_service):
        with pytest.raises(MissingField) as excinfo:
            auth_service.register({})
        assert excinfo.value.field == "username"

    @pytest.mark.parametrize(
        "password,reason",
        [
            ("1234567", "Password must be between 8 and 36 characters"),
            ("a1" * 37, "Password must be between 8 and 36 characters"),
            (" 12345678", "Password must not start with spaces"),
            ("12345678 ", "Password must not start with spaces"),
            ("abcdefghijk", "Password must contain at least one digit"),
        ],
    )
    def test_policy_violation(self, auth_service, password, reason):
        with pytest.raises(PolicyViolation) as excinfo:
            auth_service.register({**NEW_USER, "password": password})
        assert excinfo.value.message == reason

    def test_policy_runs_before_uniqueness(self, auth_service):
        with pytest.raises(PolicyViolation):
            auth_service.register({**NEW_USER, "username": "test-user-1", "password": "short"})

    def test_username_taken(self, auth_service, seeded_store):
        with pytest.raises(UsernameTaken) as excinfo:
            auth_service.register({**NEW_USER, "username": "test-user-1"})
        assert excinfo.value.message == "Username already taken"
        assert seeded_store.get_by_id(4) is None

    @pytest.mark.parametrize(
        "field,value",
        [("age", "old"), ("age", -1), ("height", 0), ("userweight", "heavy"), ("username", 42), ("password", 12345678)],
    )
    def test_invalid_field(self, auth_service, field, value):
        with pytest.raises(InvalidField) as excinfo:
            auth_service.register({**NEW_USER, field: value})
        assert excinfo.value.field == field

    @pytest.mark.parametrize("username", ["", "   ", "u" * 256])
    def test_unusable_username(self, auth_service, seeded_store, username):
        with pytest.raises(InvalidField) as excinfo:
            auth_service.register({**NEW_USER, "username": username})
        assert excinfo.value.field == "username"
        assert seeded_store.get_by_id(4) is None

    def test_longest_username_accepted(self, auth_service):
        user = auth_service.register({**NEW_USER, "username": "u" * 255})
        token = auth_service.login({"username": user.username, "password": "a1b2c3d4"})
        assert auth_service.resolve_bearer(f"bearer {token}").username == user.username

    @pytest.mark.parametrize("field,value", [("height", float("inf")), ("userweight", "inf"), ("height", "nan")])
    def test_non_finite_stats_rejected(self, auth_service, field, value):
        with pytest.raises(InvalidField) as excinfo:
            auth_service.register({**NEW_USER, field: value})
        assert excinfo.value.field == field

    def test_numeric_strings_are_coerced(self, auth_service):
        user = auth_service.register({**NEW_USER, "age": "30", "height": "170.5"})
        assert user.age == 30
        assert user.height == 170.5

    def test_success_stores_hash_only(self, auth_service, seeded_store):
        user = auth_service.register(NEW_USER)
        assert user.id == 4
        assert user.weight == 160
        stored = seeded_store.find_user_by_username("fresh")
        assert stored.hashed_password != "a1b2c3d4"
        assert verify_password("a1b2c3d4", stored.hashed_password)

    def test_registered_user_can_log_in(self, auth_service):
        auth_service.register(NEW_USER)
        assert auth_service.login({"username": "fresh", "password": "a1b2c3d4"})


class TestResolveBearer:
    def test_valid_header(self, auth_service, auth_header):
        identity = auth_service.resolve_bearer(auth_header(2, "test-user-2"))
        assert identity == Identity(username="test-user-2", user_id=2)

    def test_scheme_is_case_insensitive(self, auth_service, tokens):
        token = tokens.issue("test-user-2", {"id": 2})
        assert auth_service.resolve_bearer(f"Bearer {token}").username == "test-user-2"

    @pytest.mark.parametrize("header", [None, "", "bearer", "bearer ", "Basic dXNlcjpwYXNz", "token abc.def.ghi"])
    def test_missing_or_malformed_header(self, auth_service, header):
        with pytest.raises(Unauthenticated):
            auth_service.resolve_bearer(header)

    def test_wrong_secret(self, auth_service, auth_header):
        with pytest.raises(Unauthenticated):
            auth_service.resolve_bearer(auth_header(1, "test-user-1", secret="x" * 40))

    def test_nonexistent_subject_resolves_without_store(self, tokens, auth_header):
        class ExplodingStore:
            def find_user_by_username(self, username):
                raise AssertionError("resolve_bearer must not hit the store")

        service = AuthService(ExplodingStore(), tokens, bcrypt_rounds=4)
        identity = service.resolve_bearer(auth_header(404, "ghost"))
        assert identity == Identity(username="ghost", user_id=404)

    def test_non_integer_id_claim_is_dropped(self, auth_service, tokens):
        token = tokens.issue("test-user-1", {"id": "1"})
        assert auth_service.resolve_bearer(f"bearer {token}").user_id is None


class TestCurrentUserAndStats:
    def test_current_user_loads_record(self, auth_service, auth_header):
        user = auth_service.current_user(auth_header(2, "test-user-2"))
        assert user.username == "test-user-2"
        assert user.age == 28

    def test_current_user_for_deleted_subject(self, auth_service, auth_header):
        with pytest.raises(Unauthenticated):
            auth_service.current_user(auth_header(404, "ghost"))

    def test_update_stats(self, auth_service, seeded_store):
        user = seeded_store.get_by_id(2)
        updated = auth_service.update_stats(user, {"userweight": 1, "ignored": "x"})
        assert updated.weight == 1
        assert updated.age == 28

    def test_update_stats_requires_a_field(self, auth_service, seeded_store):
        with pytest.raises(MissingField) as excinfo:
            auth_service.update_stats(seeded_store.get_by_id(2), {"nickname": "big"})
        assert excinfo.value.message == "Request body must contain either 'age', 'height' or 'userweight'"

    def test_update_stats_rejects_infinity(self, auth_service, seeded_store):
        with pytest.raises(InvalidField) as excinfo:
            auth_service.update_stats(seeded_store.get_by_id(2), {"userweight": float("inf")})
        assert excinfo.value.field == "userweight"
        assert seeded_store.get_by_id(2).weight == 140.0

    def test_update_stats_validates_values(self, auth_service, seeded_store):
        with pytest.raises(InvalidField) as excinfo:
            auth_service.update_stats(seeded_store.get_by_id(2), {"age": "old", "height": 180})
        assert excinfo.value.field == "age"


class TestStoreFailures:
    def test_store_outage_propagates_as_unavailable(self, tokens):
        class DownStore:
            def find_user_by_username(self, username):
                raise StoreUnavailable("connection refused")

        service = AuthService(DownStore(), tokens, bcrypt_rounds=4)
        with pytest.raises(StoreUnavailable):
            service.login({"username": "test-user-1", "password": "password1"})

    def test_token_service_is_independent_of_store(self):
        service = TokenService("y" * 40)
        assert service.verify(service.issue("anyone", {"id": 1})).subject == "anyone"
