"""
Tests for turn file checksum calculations.
"""

from trnkit.trn.checksum import (
    byte_sum,
    compute_registration_sum,
    compute_time_checksum,
    compute_turn_checksum,
    describe_signature,
    verify_registration_key,
)

from conftest import TIMESTAMP_CHECKSUM, TIMESTAMP_TEXT


class TestByteSum:

    def test_empty(self):
        assert byte_sum(b"") == 0

    def test_simple(self):
        assert byte_sum(b"\x01\x02\xFF") == 258

    def test_seed(self):
        assert byte_sum(b"\x01", 10) == 11

    def test_wraps(self):
        assert byte_sum(b"\x01", 0xFFFFFFFF) == 0

    def test_negative_seed_wraps(self):
        assert byte_sum(b"", -1) == 0xFFFFFFFF


class TestTimeChecksum:

    def test_reference_timestamp(self):
        assert compute_time_checksum(TIMESTAMP_TEXT.encode("ascii")) == TIMESTAMP_CHECKSUM

    def test_signed_result(self):
        # 18 * 0xFF = 4590, still positive
        assert compute_time_checksum(b"\xFF" * 18) == 4590


class TestTurnChecksum:

    def test_formula(self):
        body = b"\x01\x02\x03"
        assert compute_turn_checksum(body, 913) == 6 + 3 * 913 + 13

    def test_negative_time_checksum(self):
        # Sum wraps modulo 2^32
        assert compute_turn_checksum(b"\x10", -10) == (16 - 30 + 13) & 0xFFFFFFFF
        assert compute_turn_checksum(b"\x10", -10) == 0xFFFFFFFF

    def test_one_byte_change_changes_checksum(self):
        assert compute_turn_checksum(b"\x03\x00", 0) == compute_turn_checksum(b"\x02\x00", 0) + 1


class TestRegistrationSum:

    def test_seed(self):
        assert compute_registration_sum([]) == 668

    def test_sum(self):
        assert compute_registration_sum([1, 2, 3]) == 674

    def test_verify_valid_key(self):
        words = list(range(50))
        words.append(compute_registration_sum(words))
        assert verify_registration_key(words)

    def test_verify_invalid_key(self):
        words = list(range(50)) + [0]
        assert not verify_registration_key(words)

    def test_verify_wrong_size(self):
        assert not verify_registration_key([668])


class TestSignatures:

    def test_known(self):
        assert describe_signature(0x474E3243) == "c2ng"
        assert describe_signature(0) == "Tim's Maketurn or VPmaketurn"

    def test_unknown(self):
        assert describe_signature(0x12345678) == "Tim's Maketurn"
