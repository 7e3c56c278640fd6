[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "toykernel"
version = "0.1.0"
description = "A simulated hobby x86-64 kernel: printf-style formatting, VGA text console, PS/2 keyboard, interrupts and boot-time tables"
requires-python = ">=3.10"
dependencies = []
keywords = ["kernel", "vga", "printf", "ps2", "interrupts", "simulation", "osdev"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System Kernels",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
toykernel = "toykernel.kernel:main"

[tool.hatch.build.targets.wheel]
packages = ["toykernel"]

[tool.pytest.ini_options]
addopts = "-ra"
