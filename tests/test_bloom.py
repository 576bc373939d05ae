import pytest

from corex.bloom import DEFAULT_MAPS, BitSet, BloomFilter, sum64


def test_sum64_empty_is_zero():
    assert sum64(b"") == 0


def test_sum64_known_value():
    assert sum64(b"hello") == 0xCBD8A7B341BD9B02


def test_sum64_is_64_bit_and_deterministic():
    data = b"a longer input that spans several sixteen byte blocks!"
    value = sum64(data)
    assert 0 <= value < 2**64
    assert sum64(data) == value
    assert sum64(data + b"x") != value


def test_bitset_add_exists_reset():
    bits = BitSet(16)
    assert bits.exists([1, 5]) is False
    bits.add([1, 5])
    assert bits.exists([1, 5]) is True
    assert bits.exists([1, 6]) is False
    bits.reset()
    assert bits.exists([1]) is False
    assert len(bits) == 16


def test_bloom_requires_positive_bits():
    with pytest.raises(ValueError):
        BloomFilter(0)
    with pytest.raises(ValueError):
        BloomFilter(-3)


def test_bloom_default_maps():
    f = BloomFilter(1024)
    assert f.maps == DEFAULT_MAPS == 14


def test_bloom_add_and_exists():
    f = BloomFilter(1 << 16)
    assert f.exists(b"key1") is False
    f.add(b"key1")
    assert f.exists(b"key1") is True


def test_bloom_empty_data():
    f = BloomFilter(64)
    f.add(b"")
    assert f.exists(b"") is False


def test_bloom_reset_forgets():
    f = BloomFilter(1 << 12)
    f.add(b"item")
    f.reset()
    assert f.exists(b"item") is False


def test_locations_in_range_and_stable():
    f = BloomFilter(97, maps=5)
    locations = f.locations(b"data")
    assert len(locations) == 5
    assert all(0 <= loc < 97 for loc in locations)
    assert f.locations(b"data") == locations


def test_custom_bitset_receives_locations():
    class Recorder:
        def __init__(self):
            self.added = []

        def add(self, locations):
            self.added.append(list(locations))

        def exists(self, locations):
            return list(locations) in self.added

        def reset(self):
            self.added.clear()

    store = Recorder()
    f = BloomFilter(128, maps=3, bitset=store)
    f.add(b"abc")
    assert store.added == [f.locations(b"abc")]
    assert f.exists(b"abc") is True
    f.reset()
    assert store.added == []