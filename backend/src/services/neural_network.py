"""Small dense regression network with hand-written backprop and Adam."""

import numpy as np

# Input -> hidden (ReLU) -> hidden (ReLU) -> output (sigmoid)
DEFAULT_LAYER_SIZES = (12, 16, 8, 1)


def relu(x):
    return np.maximum(0, x)


def relu_grad(x):
    return (x > 0).astype(float)


def sigmoid(x):
    return 1.0 / (1.0 + np.exp(-np.clip(x, -500, 500)))


def describe_architecture(layer_sizes) -> str:
    """Human-readable descriptor, e.g. '12 -> 16 (relu) -> 8 (relu) -> 1 (sigmoid)'."""
    parts = [str(layer_sizes[0])]
    for i, size in enumerate(layer_sizes[1:], start=1):
        activation = "sigmoid" if i == len(layer_sizes) - 1 else "relu"
        parts.append(f"{size} ({activation})")
    return " -> ".join(parts)


class DenseNetwork:
    """Feed-forward network: ReLU hidden layers, one sigmoid output in [0, 1].

    ``weights[i]`` has shape (n_in, n_out) and ``biases[i]`` shape (n_out,).
    """

    def __init__(self, layer_sizes=DEFAULT_LAYER_SIZES, rng=None):
        if len(layer_sizes) < 2:
            raise ValueError(f"need at least input and output sizes: {layer_sizes}")
        rng = rng if rng is not None else np.random.default_rng()
        self.layer_sizes = tuple(int(s) for s in layer_sizes)
        self.weights = []
        self.biases = []
        # He initialization
        for n_in, n_out in zip(self.layer_sizes[:-1], self.layer_sizes[1:]):
            self.weights.append(rng.standard_normal((n_in, n_out)) * np.sqrt(2.0 / n_in))
            self.biases.append(np.zeros(n_out))

    @property
    def n_layers(self) -> int:
        return len(self.weights)

    @property
    def parameter_count(self) -> int:
        return sum(w.size + b.size for w, b in zip(self.weights, self.biases))

    @property
    def architecture(self) -> str:
        return describe_architecture(self.layer_sizes)

    def forward(self, X):
        """Forward pass. Returns flat predictions and cache for backprop."""
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2 or X.shape[1] != self.layer_sizes[0]:
            raise ValueError(
                f"expected input of shape (n, {self.layer_sizes[0]}), got {X.shape}"
            )
        activations = [X]
        pre_activations = []
        A = X
        for i, (W, b) in enumerate(zip(self.weights, self.biases)):
            Z = A @ W + b
            pre_activations.append(Z)
            A = sigmoid(Z) if i == self.n_layers - 1 else relu(Z)
            activations.append(A)
        return A.flatten(), {"Z": pre_activations, "A": activations}

    def backward(self, y_true, y_pred, cache):
        """Backward pass for mean squared error. Returns [(dW, db), ...]."""
        n = len(y_true)
        d_out = (2.0 / n) * (y_pred - y_true)

        # Sigmoid derivative expressed through its output
        dZ = (d_out * y_pred * (1.0 - y_pred)).reshape(-1, 1)

        grads = [None] * self.n_layers
        for i in reversed(range(self.n_layers)):
            A_prev = cache["A"][i]
            grads[i] = (A_prev.T @ dZ, dZ.sum(axis=0))
            if i > 0:
                dZ = (dZ @ self.weights[i].T) * relu_grad(cache["Z"][i - 1])
        return grads

    def predict(self, X):
        out, _ = self.forward(X)
        return out


class AdamOptimizer:
    """Adam with bias-corrected first and second moment estimates."""

    def __init__(
        self,
        network: DenseNetwork,
        learning_rate: float = 0.005,
        beta1: float = 0.9,
        beta2: float = 0.999,
        epsilon: float = 1e-8,
    ):
        self.network = network
        self.learning_rate = learning_rate
        self.beta1 = beta1
        self.beta2 = beta2
        self.epsilon = epsilon
        self.t = 0
        params = self._params()
        self.m = [np.zeros_like(p) for p in params]
        self.v = [np.zeros_like(p) for p in params]

    def _params(self):
        params = []
        for W, b in zip(self.network.weights, self.network.biases):
            params.extend([W, b])
        return params

    def step(self, grads) -> None:
        """Apply one update in place from backward() gradients."""
        self.t += 1
        flat_grads = [g for pair in grads for g in pair]
        bc1 = 1 - self.beta1**self.t
        bc2 = 1 - self.beta2**self.t
        for param, grad, m, v in zip(self._params(), flat_grads, self.m, self.v):
            if grad.shape != param.shape:
                raise ValueError(
                    f"gradient shape {grad.shape} does not match parameter {param.shape}"
                )
            m *= self.beta1
            m += (1 - self.beta1) * grad
            v *= self.beta2
            v += (1 - self.beta2) * grad**2
            param -= self.learning_rate * (m / bc1) / (np.sqrt(v / bc2) + self.epsilon)
