# bmpserver

A small HTTP server for bitmap (BMP) images. It serves a web page listing
the images it holds, accepts new images through a multipart form upload,
and answers filter requests by running a filter program over an image and
sending the result back as a BMP download.

## Installing

```
pip install .
```

## Running the server

```
bmpserver              # listens on port 30000
bmpserver --port 8080  # or -p 8080
```

The server listens on every interface, accepts up to 10 connections at a
time and answers each request on a worker thread, closing the connection
when the response is done.

It works relative to the directory it is started in:

- `main.html` is the page served at `/main.html`. The list of images is
  written into the page just after the line that starts with `<script>`,
  as a line of JavaScript: `var filenames = ['a.bmp', 'b.bmp', ];`.
- `images/` holds the images. Uploads are stored here; an upload whose
  file name already exists is refused with `400 Bad Request`.
- `filters/` holds the filter programs. A filter is any executable file in
  this directory that reads a BMP on standard input and writes a BMP to
  standard output.

Routes:

| Method | Path             | What it does                                                |
|--------|------------------|-------------------------------------------------------------|
| GET    | `/main.html`     | The main page, with the current image list                  |
| GET    | `/image-filter`  | Runs `filters/<filter>` over `images/<image>`               |
| POST   | `/image-upload`  | Stores the uploaded bitmap, then redirects to `/main.html`  |

Anything else gets `404 Not Found`. The `filter` and `image` query
parameters of `/image-filter` are both required and may not contain a `/`;
the filter must be executable and the image readable, otherwise the answer
is `400 Bad Request`. At most five query parameters are read from a
request line.

## Filter commands

The package ships four filters as commands. Each reads a 24-bit BMP on
standard input and writes the filtered BMP to standard output:

```
bmp-copy            < in.bmp > out.bmp
bmp-greyscale       < in.bmp > out.bmp
bmp-gaussian-blur   < in.bmp > out.bmp
bmp-edge-detection  < in.bmp > out.bmp
```

`bmp-greyscale` replaces each pixel with the average of its channels.
`bmp-gaussian-blur` and `bmp-edge-detection` apply a 3x3 kernel (Gaussian
blur, Sobel edge magnitude) and repeat the border rows and columns; they
need an image of at least 3x3 pixels. A truncated or malformed bitmap is
reported on standard error and the command exits with status 1.

To offer them through the server, make them available as executables in
the `filters/` directory, for example:

```
mkdir -p filters images
ln -s "$(command -v bmp-greyscale)" filters/greyscale
ln -s "$(command -v bmp-gaussian-blur)" filters/gaussian_blur
```

A request for `/image-filter?filter=greyscale&image=sam.bmp` then returns
a greyscale copy of `images/sam.bmp`.

## Using the library

The filters can also be used from Python:

```python
import sys
from bmpserver.bitmap import run_filter
from bmpserver.filters import greyscale

run_filter(greyscale, 1, sys.stdin.buffer, sys.stdout.buffer)
```

- `bmpserver.bitmap` provides `read_header`, `read_pixels`, `write_pixels`,
  `run_filter`, the `Bitmap` and `Pixel` types, `BitmapFormatError`, and
  the 3x3 kernels `apply_gaussian_kernel` and `apply_edge_detection_kernel`.
  `Bitmap.scale` multiplies the dimensions and rewrites the header.
- `bmpserver.filters` provides `copy_filter`, `greyscale`,
  `gaussian_filter` and `edge_detection`.
- `bmpserver.request` provides `parse_request_line`, `RequestData` and
  `ClientState`, which buffers a client's input and reads the start line,
  multipart boundary, uploaded file name and file body.
- `bmpserver.response` provides the functions that write each response.
- `bmpserver.netsock` provides `setup_server_socket`, `accept_connection`
  and `connect_to_server`.
- `bmpserver.server` provides `serve`, `handle_client` and `dispatch`.

## What it does not do

The package does not come with a `main.html` page or any sample images.
Provide `main.html` in the directory the server runs from; without it a
request for `/main.html` is closed without a response. Create the
`images/` and `filters/` directories yourself.

## Tests

```
pip install .[test]
pytest
```