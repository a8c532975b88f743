from hls_cli.hls.stitcher import stitch


def test_stitch_concatenates_in_index_order():
    assert stitch([b"AAA", b"BB", b"C"]) == b"AAABBC"


def test_stitch_skips_missing_and_empty_buffers():
    assert stitch([b"A", None, b"", b"B"]) == b"AB"


def test_stitch_of_nothing_is_empty():
    assert stitch([]) == b""
    assert stitch([None, None]) == b""
