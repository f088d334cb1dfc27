"""
Tests for the FieldCodec class.
"""

import pytest

from pii_vault.codec import USER_DECRYPTED_FIELDS, FieldCodec, field_columns, map_encrypted_columns
from pii_vault.encryption import CipherEngine, CipherQuadruplet
from pii_vault.errors import VaultLogicError


FIELD_SUFFIXES = ("Encrypted", "Iv", "Tag", "Salt")


class TestEncryptFields:
    """Tests for the write path."""

    def setup_method(self) -> None:
        """Set up a codec for each test."""
        self.codec = FieldCodec()

    def test_absent_field_is_untouched(self, identity: str) -> None:
        """A field missing from a partial update emits no columns at all."""
        result = self.codec.encrypt_fields(identity, {}, ["firstName"])
        assert result == {}

        result = self.codec.encrypt_fields(identity, {"clientId": "C-1"}, ["firstName"])
        assert result == {"clientId": "C-1"}
        assert not any(key.startswith("firstName") for key in result)

    @pytest.mark.parametrize("empty", ["", "   ", None])
    def test_empty_field_is_cleared(self, identity: str, empty) -> None:
        """A field present but empty sets all four columns to None."""
        result = self.codec.encrypt_fields(identity, {"firstName": empty}, ["firstName"])

        assert result == {f"firstName{suffix}": None for suffix in FIELD_SUFFIXES}

    def test_non_empty_field_is_encrypted(self, identity: str) -> None:
        """A non-empty value becomes a full quadruplet and the plaintext is dropped."""
        result = self.codec.encrypt_fields(
            identity,
            {"firstName": "García", "email": identity},
            ["firstName"],
        )

        assert "firstName" not in result
        assert result["email"] == identity
        for suffix in FIELD_SUFFIXES:
            assert isinstance(result[f"firstName{suffix}"], str)
            assert result[f"firstName{suffix}"]
        assert "García" not in str(result)

    def test_default_fields(self, identity: str) -> None:
        """By default the account writer encrypts first name, last name and phone."""
        result = self.codec.encrypt_fields(
            identity,
            {"firstName": "Ana", "lastName": "López", "phone": "5512345678", "city": "CDMX"},
        )

        assert result["city"] == "CDMX"
        for field in ("firstName", "lastName", "phone"):
            assert field not in result
            assert result[f"{field}Encrypted"]

    def test_non_string_value_is_logic_error(self, identity: str) -> None:
        """Sensitive values must be strings."""
        with pytest.raises(VaultLogicError):
            self.codec.encrypt_fields(identity, {"phone": 5512345678}, ["phone"])

    def test_each_write_uses_fresh_quadruplet(self, identity: str) -> None:
        """Rewriting the same value never reuses salt or IV."""
        first = self.codec.encrypt_fields(identity, {"phone": "5512345678"}, ["phone"])
        second = self.codec.encrypt_fields(identity, {"phone": "5512345678"}, ["phone"])

        assert first["phoneIv"] != second["phoneIv"]
        assert first["phoneSalt"] != second["phoneSalt"]


class TestDecryptFields:
    """Tests for the read path."""

    def setup_method(self) -> None:
        """Set up a codec for each test."""
        self.codec = FieldCodec()

    def test_round_trip(self, identity: str) -> None:
        """Encrypted fields decrypt back under their logical names."""
        stored = self.codec.encrypt_fields(
            identity,
            {"id": "user-1", "firstName": "García", "lastName": "Núñez", "phone": "5512345678"},
        )
        result = self.codec.decrypt_fields(identity, stored)

        assert result["firstName"] == "García"
        assert result["lastName"] == "Núñez"
        assert result["phone"] == "5512345678"
        assert result["id"] == "user-1"

    def test_wrong_identity_gives_none(self, identity: str) -> None:
        """A decrypt failure exposes None, not an exception or the ciphertext."""
        stored = self.codec.encrypt_fields(identity, {"firstName": "García"}, ["firstName"])
        result = self.codec.decrypt_fields("x@y.com", stored, ["firstName"])

        assert result["firstName"] is None

    def test_stale_field_is_removed(self, identity: str) -> None:
        """A field with neither scalar nor columns is absent from the output."""
        row = {"id": "user-1", "street": "Main St"}
        result = self.codec.decrypt_fields(identity, row, ["street", "city"])

        assert result["street"] == "Main St"
        assert "city" not in result

    def test_stale_field_removed_from_cached_copy(self, identity: str) -> None:
        """Values cached from an earlier read do not survive an out-of-band clear."""
        cached = {"id": "user-1", "city": "Springfield", "firstName": "Ana"}
        row = {"id": "user-1", "firstName": "Ana"}

        result = self.codec.decrypt_fields(identity, row, ["firstName", "city"], into=cached)

        assert result is cached
        assert "city" not in cached
        assert cached["firstName"] == "Ana"

    def test_cleared_columns_fall_back_to_scalar(self, identity: str) -> None:
        """All-null cipher columns leave a legacy scalar in place."""
        stored = self.codec.encrypt_fields(identity, {"firstName": ""}, ["firstName"])
        stored["firstName"] = "Legacy"

        assert self.codec.decrypt_fields(identity, stored, ["firstName"])["firstName"] == "Legacy"

    def test_cleared_columns_without_scalar_are_removed(self, identity: str) -> None:
        """All-null cipher columns and no scalar means no value."""
        stored = self.codec.encrypt_fields(identity, {"firstName": ""}, ["firstName"])

        assert "firstName" not in self.codec.decrypt_fields(identity, stored, ["firstName"])

    def test_encrypted_columns_win_over_scalar(self, identity: str) -> None:
        """A complete quadruplet is used even when an old scalar lingers."""
        stored = self.codec.encrypt_fields(identity, {"phone": "5512345678"}, ["phone"])
        stored["phone"] = "old value"

        assert self.codec.decrypt_fields(identity, stored, ["phone"])["phone"] == "5512345678"

    def test_snake_case_columns(self, identity: str) -> None:
        """snake_case cipher columns are read as well."""
        quadruplet = self.codec.engine.encrypt(identity, "Springfield")
        row = {
            "city_encrypted": quadruplet.ciphertext,
            "city_iv": quadruplet.iv,
            "city_tag": quadruplet.tag,
            "city_salt": quadruplet.salt,
        }

        assert self.codec.decrypt_fields(identity, row, ["city"])["city"] == "Springfield"

    def test_deeply_nested_cipher_column(self, identity: str) -> None:
        """A brace-prefixed cipher column too deep to parse does not raise."""
        row = {"id": "user-1", "firstNameEncrypted": '{"a":' + "[" * 200000 + "]" * 200000 + "}"}

        result = self.codec.decrypt_fields(identity, row, ["firstName"])

        assert "firstName" not in result
        assert result["id"] == "user-1"

    def test_does_not_mutate_input(self, identity: str) -> None:
        """The stored row is left as it was."""
        row = {"id": "user-1"}
        self.codec.decrypt_fields(identity, row, USER_DECRYPTED_FIELDS)
        assert row == {"id": "user-1"}


class TestColumnHelpers:
    """Tests for column naming helpers."""

    def test_map_encrypted_columns(self) -> None:
        """snake_case cipher columns are renamed to the schema's camelCase."""
        mapped = map_encrypted_columns(
            {
                "first_name_encrypted": "aa",
                "first_name_iv": "bb",
                "phone_tag": "cc",
                "phone_salt": "dd",
                "email": "a@b.com",
                "created_at": "2025-01-01",
            }
        )

        assert mapped == {
            "firstNameEncrypted": "aa",
            "firstNameIv": "bb",
            "phoneTag": "cc",
            "phoneSalt": "dd",
            "email": "a@b.com",
            "created_at": "2025-01-01",
        }

    def test_field_columns(self) -> None:
        """Column builders cover both a value and a clear."""
        quadruplet = CipherQuadruplet(ciphertext="aa", iv="bb", tag="cc", salt="dd")

        assert field_columns("phone", quadruplet) == {
            "phoneEncrypted": "aa",
            "phoneIv": "bb",
            "phoneTag": "cc",
            "phoneSalt": "dd",
        }
        assert set(field_columns("phone", None).values()) == {None}

    def test_codec_shares_engine(self) -> None:
        """The normalizer uses the codec's engine."""
        engine = CipherEngine()
        codec = FieldCodec(engine)
        assert codec.normalizer.engine is engine
