"""
Tests for the model file format and ModelStore.
"""

import struct

import numpy as np
import pytest

from bracketnet.core.config import Architecture
from bracketnet.core import persistence
from bracketnet.core.network import Network
from bracketnet.core.persistence import (
    ModelFormatError,
    ModelStore,
    decode_network,
    encode_network,
    export_model,
    load_and_predict,
)

from conftest import constant_network


@pytest.fixture
def tiny_architecture():
    return Architecture(input_bits=8, hidden_layers=[4], output_bits=2)


class TestModelFormat:
    """Tests for encode_network / decode_network."""

    def test_size(self, tiny_architecture, rng):
        network = Network.new_random(tiny_architecture, rng=rng)
        data = encode_network(network)

        assert len(data) == 640
        assert len(data) == tiny_architecture.model_size_bytes

    def test_first_pair_is_big_endian(self, tiny_architecture, rng):
        network = Network.new_random(tiny_architecture, rng=rng)
        layer = network.layers[0]

        data = encode_network(network)

        assert data[:16] == struct.pack('>dd', layer.weights[0, 0], layer.offsets[0, 0])
        assert data[16:32] == struct.pack('>dd', layer.weights[0, 1], layer.offsets[0, 1])

    def test_last_pair_is_last_synapse(self, tiny_architecture, rng):
        network = Network.new_random(tiny_architecture, rng=rng)
        layer = network.layers[-1]

        data = encode_network(network)

        assert data[-16:] == struct.pack('>dd', layer.weights[-1, -1], layer.offsets[-1, -1])

    def test_matches_synapse_order(self, rng):
        arch = Architecture(3, [2], 2)
        network = Network.new_random(arch, rng=rng)

        expected = b''.join(
            struct.pack('>dd', s.weight, s.offset) for _, _, _, s in network.synapses()
        )

        assert encode_network(network) == expected

    def test_round_trip_is_exact(self, small_architecture, rng):
        network = Network.new_random(small_architecture, rng=rng)

        restored = decode_network(encode_network(network), small_architecture)

        assert restored == network
        for layer in restored.layers:
            assert layer.weights.flags.writeable

    def test_network_bytes_helpers(self, small_architecture, rng):
        network = Network.new_random(small_architecture, rng=rng)

        restored = Network.from_bytes(network.to_bytes(), small_architecture)

        assert restored == network

    def test_wrong_length(self, tiny_architecture, rng):
        data = encode_network(Network.new_random(tiny_architecture, rng=rng))

        with pytest.raises(ModelFormatError):
            decode_network(data[:-1], tiny_architecture)
        with pytest.raises(ModelFormatError):
            decode_network(data + bytes(16), tiny_architecture)

    def test_format_error_is_value_error(self, tiny_architecture):
        with pytest.raises(ValueError):
            decode_network(b'', tiny_architecture)


class TestModelStore:
    """Tests for file-backed model storage."""

    def test_save_and_load(self, tmp_path, small_architecture, rng):
        network = Network.new_random(small_architecture, rng=rng)
        store = ModelStore(tmp_path / 'model.mmp')

        path = store.save(network)

        assert path.stat().st_size == small_architecture.model_size_bytes
        assert store.exists()
        assert store.load(small_architecture) == network

    def test_reload_evaluates_identically(self, tmp_path, small_architecture, rng):
        network = Network.new_random(small_architecture, rng=rng)
        store = ModelStore(tmp_path / 'model.mmp')
        store.save(network)

        restored = store.load(small_architecture)

        for _ in range(10):
            data = rng.integers(0, 256, size=small_architecture.input_bytes, dtype=np.uint8)
            assert restored.evaluate(data.tobytes()) == network.evaluate(data.tobytes())

    def test_overwrite_replaces(self, tmp_path, small_architecture, rng):
        store = ModelStore(tmp_path / 'model.mmp')
        store.save(Network.new_random(small_architecture, rng=rng))
        second = Network.new_random(small_architecture, rng=rng)

        store.save(second)

        assert store.path.stat().st_size == small_architecture.model_size_bytes
        assert store.load(small_architecture) == second

    def test_failed_save_keeps_previous_model(self, tmp_path, small_architecture, rng, monkeypatch):
        store = ModelStore(tmp_path / 'model.mmp')
        first = Network.new_random(small_architecture, rng=rng)
        store.save(first)

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(persistence.os, 'replace', failing_replace)
        with pytest.raises(OSError):
            store.save(Network.new_random(small_architecture, rng=rng))
        monkeypatch.undo()

        assert store.load(small_architecture) == first
        assert list(tmp_path.glob('*.tmp')) == []

    def test_creates_parent_directories(self, tmp_path, byte_architecture):
        store = ModelStore(tmp_path / 'runs' / 'best' / 'model.mmp')
        store.save(constant_network(byte_architecture, 0.5, 0.0))

        assert store.exists()

    def test_missing_file(self, tmp_path, small_architecture):
        store = ModelStore(tmp_path / 'missing.mmp')

        assert not store.exists()
        with pytest.raises(FileNotFoundError):
            store.load(small_architecture)

    def test_truncated_file(self, tmp_path, small_architecture, rng):
        path = tmp_path / 'model.mmp'
        ModelStore(path).save(Network.new_random(small_architecture, rng=rng))
        path.write_bytes(path.read_bytes()[:100])

        with pytest.raises(ModelFormatError):
            ModelStore(path).load(small_architecture)

    def test_wrong_architecture(self, tmp_path, small_architecture, rng):
        path = tmp_path / 'model.mmp'
        ModelStore(path).save(Network.new_random(small_architecture, rng=rng))

        with pytest.raises(ModelFormatError):
            ModelStore(path).load(Architecture(20, [5, 12], 13))


class TestPredictHelpers:
    """Tests for export_model and load_and_predict."""

    def test_load_and_predict(self, tmp_path, byte_architecture):
        path = tmp_path / 'ones.mmp'
        export_model(path, constant_network(byte_architecture, 1.0, 0.0))

        assert load_and_predict(path, bytes([0x01]), byte_architecture) == bytes([0xFF])
        assert load_and_predict(path, bytes([0x00]), byte_architecture) == bytes([0x00])

    def test_load_and_predict_missing(self, tmp_path, byte_architecture):
        with pytest.raises(FileNotFoundError):
            load_and_predict(tmp_path / 'none.mmp', bytes([0x01]), byte_architecture)
