"""A simulated hobby x86-64 kernel: formatting, memory helpers, drivers, interrupts and boot tables."""

__version__ = "0.1.0"