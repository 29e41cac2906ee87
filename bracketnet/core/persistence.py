"""
Model storage for trained networks.

A model file is a flat sequence of big-endian IEEE-754 doubles with no
header. Synapses are written as (weight, offset) pairs in storage order:

    for each layer, for each node, for each synapse: weight, offset

so the file is 16 * sum(node_count * synapse_count) bytes long. The format
does not describe its own shape; the reader must already know the
architecture the model was trained with.
"""

from pathlib import Path
import os
from typing import Optional, Union

import numpy as np
from filelock import FileLock

from .bits import Buffer
from .config import Architecture, Hyperparameters
from .layer import Layer
from .network import Network

MODEL_DTYPE = np.dtype('>f8')


class ModelFormatError(ValueError):
    """Raised when a stored model does not fit the expected architecture."""


def encode_network(network: Network) -> bytes:
    """Serialize every synapse of a network to the model format."""
    chunks = []
    for layer in network.layers:
        # (nodes, synapses, 2) -> weight, offset interleaved per synapse
        pairs = np.stack([layer.weights, layer.offsets], axis=-1)
        chunks.append(pairs.astype(MODEL_DTYPE).tobytes())
    return b''.join(chunks)


def decode_network(
    buffer: bytes,
    architecture: Architecture,
    params: Optional[Hyperparameters] = None,
) -> Network:
    """
    Rebuild a network from the model format.

    Raises:
        ModelFormatError: If the buffer length does not match the architecture
    """
    expected = architecture.model_size_bytes
    if len(buffer) != expected:
        raise ModelFormatError(
            f"Model holds {len(buffer)} bytes but architecture "
            f"{architecture.architecture_string} needs {expected}"
        )

    values = np.frombuffer(buffer, dtype=MODEL_DTYPE).astype(np.float64)
    layers = []
    position = 0
    for node_count, synapse_count in architecture.layer_shapes:
        n_values = node_count * synapse_count * 2
        pairs = values[position:position + n_values].reshape(node_count, synapse_count, 2)
        layers.append(Layer(pairs[..., 0].copy(), pairs[..., 1].copy()))
        position += n_values

    return Network(architecture, layers, params)


class ModelStore:
    """
    File-backed storage for a single model.

    Writes are guarded by a file lock so concurrent runs sharing a model path
    cannot interleave their output.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _get_lock(self) -> FileLock:
        return FileLock(str(self.path) + '.lock')

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, network: Network) -> Path:
        """
        Write the network, replacing any existing model at this path.

        The bytes go to a temporary file next to the model which is then
        moved over it, so a failed write leaves the previous model intact.
        """
        data = encode_network(network)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + '.tmp')
        with self._get_lock():
            try:
                tmp_path.write_bytes(data)
                os.replace(tmp_path, self.path)
            finally:
                if tmp_path.exists():
                    tmp_path.unlink()
        return self.path

    def load(
        self,
        architecture: Architecture,
        params: Optional[Hyperparameters] = None,
    ) -> Network:
        """
        Read the model back.

        Raises:
            FileNotFoundError: If no model exists at this path
            ModelFormatError: If the file is truncated or too long
        """
        if not self.path.exists():
            raise FileNotFoundError(f"Model file not found: {self.path}")
        with self._get_lock():
            data = self.path.read_bytes()
        return decode_network(data, architecture, params)


def export_model(path: Union[str, Path], network: Network) -> Path:
    """Save a network to path."""
    return ModelStore(path).save(network)


def load_and_predict(
    path: Union[str, Path],
    input_buffer: Buffer,
    architecture: Architecture,
    params: Optional[Hyperparameters] = None,
) -> bytes:
    """Load the model at path and evaluate one input buffer with it."""
    network = ModelStore(path).load(architecture, params)
    return network.evaluate(input_buffer)
