import pytest

from medaccess.app.security import crypto


def test_encrypt_decrypt_round_trip():
    blob = crypto.encrypt("patient data key", "pw-1")
    assert crypto.decrypt(blob, "pw-1") == b"patient data key"


def test_blob_layout():
    blob = crypto.encrypt(b"abc", "pw")
    assert len(blob) == crypto.SALT_SIZE + crypto.IV_SIZE + 3 + crypto.TAG_SIZE


def test_same_input_encrypts_differently():
    assert crypto.encrypt("abc", "pw") != crypto.encrypt("abc", "pw")


def test_wrong_secret_fails():
    blob = crypto.encrypt("abc", "right")
    with pytest.raises(crypto.DecryptionFailed):
        crypto.decrypt(blob, "wrong")


def test_tampered_blob_fails():
    blob = bytearray(crypto.encrypt("abc", "pw"))
    blob[-1] ^= 0x01
    with pytest.raises(crypto.DecryptionFailed):
        crypto.decrypt(bytes(blob), "pw")


@pytest.mark.parametrize("blob", [b"", b"\x00" * 10, b"\x00" * 47])
def test_malformed_blob_fails(blob):
    with pytest.raises(crypto.DecryptionFailed):
        crypto.decrypt(blob, "pw")


def test_derive_key_is_deterministic_per_salt():
    salt = b"\x01" * crypto.SALT_SIZE
    assert crypto.derive_key("pw", salt) == crypto.derive_key("pw", salt)
    assert crypto.derive_key("pw", salt) != crypto.derive_key("pw", b"\x02" * crypto.SALT_SIZE)
    assert len(crypto.derive_key("pw", salt)) == crypto.KEY_SIZE


def test_passphrase_shape():
    passphrase = crypto.create_passphrase()
    groups = passphrase.split(" ")
    assert len(groups) == crypto.PASSPHRASE_GROUPS
    assert all(len(g) == crypto.PASSPHRASE_GROUP_LENGTH for g in groups)
    assert passphrase != crypto.create_passphrase()


def test_private_key_length():
    key = crypto.create_private_key()
    assert len(key) == 64
    int(key, 16)
    assert len(crypto.create_private_key(33)) == 33


def test_encryption_profile_unlocks_same_master_key():
    profile = crypto.create_encryption_profile("user password")

    via_password = crypto.decrypt(profile.keys.user_key, "user password")
    via_passphrase = crypto.decrypt(profile.keys.recovery_key, profile.passphrase)

    assert via_password == via_passphrase
    assert len(via_password) == 64


def test_encryption_profiles_differ_for_same_password():
    first = crypto.create_encryption_profile("same")
    second = crypto.create_encryption_profile("same")

    assert first.keys.user_key != second.keys.user_key
    assert first.keys.recovery_key != second.keys.recovery_key
    assert first.passphrase != second.passphrase


def test_passphrase_is_not_in_repr():
    profile = crypto.create_encryption_profile("pw")
    assert profile.passphrase not in repr(profile)
