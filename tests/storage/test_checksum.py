import base64
import hashlib

import pytest

from storj_storage.checksum import ChecksumAccumulator, compute_checksum, validate_checksum
from storj_storage.exceptions import IntegrityError, ValidationError


def test_compute_checksum_is_base64_md5():
    data = b"Something else entirely!"
    assert compute_checksum(data) == base64.b64encode(hashlib.md5(data).digest()).decode()
    assert compute_checksum(b"") == "1B2M2Y8AsgTpgAmY7PhCfg=="


def test_accumulator_matches_one_shot_digest():
    acc = ChecksumAccumulator()
    for piece in (b"abc", b"", b"def" * 1000):
        acc.update(piece)
    assert acc.size == 3003
    assert acc.base64digest() == compute_checksum(b"abc" + b"def" * 1000)
    acc.verify(compute_checksum(b"abc" + b"def" * 1000), "key")


def test_accumulator_verify_mismatch():
    acc = ChecksumAccumulator()
    acc.update(b"data")
    with pytest.raises(IntegrityError):
        acc.verify(compute_checksum(b"other"), "key")


@pytest.mark.parametrize("value", ["not base64!", base64.b64encode(b"short").decode()])
def test_validate_checksum_rejects_malformed(value):
    with pytest.raises(ValidationError):
        validate_checksum(value)
