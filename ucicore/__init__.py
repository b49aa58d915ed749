"""UCI engine building blocks: options, tuning, time management, hashing and tablebase decoding."""

__version__ = "0.1.0"