# tests/conftest.py
import gzip, json, pathlib, sys, pytest

ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

SAMPLES = pathlib.Path(__file__).parent / "samples"


def load(folder: str, filename: str, binary: bool = False):
    """
    Read a fixture from tests/samples/, transparently handling .gz files.
    Set binary=True to return bytes, else str.
    """
    fp = SAMPLES / folder / filename
    if fp.suffix == ".gz":
        with gzip.open(fp, "rb") as f:
            data = f.read()
            return data if binary else data.decode("utf-8")
    mode = "rb" if binary else "r"
    with open(fp, mode, **({} if binary else {"encoding": "utf-8"})) as f:
        return f.read()


def load_json(folder: str, filename: str):
    return json.loads(load(folder, filename))


@pytest.fixture
def lss_sample():
    """Loader for tests/samples/lss/ files."""
    return lambda filename: load("lss", filename)


@pytest.fixture
def lss_json():
    """JSON loader for tests/samples/lss/ files."""
    return lambda filename: load_json("lss", filename)
