[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bmpserver"
version = "0.1.0"
description = "A small HTTP server that stores uploaded BMP images and runs image filters over them"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "server", "bmp", "bitmap", "image-filter", "gaussian-blur", "edge-detection"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Multimedia :: Graphics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
bmpserver = "bmpserver.server:main"
bmp-copy = "bmpserver.filters:main_copy"
bmp-greyscale = "bmpserver.filters:main_greyscale"
bmp-gaussian-blur = "bmpserver.filters:main_gaussian_blur"
bmp-edge-detection = "bmpserver.filters:main_edge_detection"

[tool.hatch.build.targets.wheel]
packages = ["bmpserver"]

[tool.pytest.ini_options]
addopts = "-ra"
