import logging

import pandas as pd
import pytest
from stairval.notepad import create_notepad


@pytest.fixture
def notepad():
    return create_notepad("test")


@pytest.fixture(scope="session")
def scenario_tokens() -> list:
    """
    Eight valid MIC tokens followed by one garbage token.
    """
    return ["16", "1", "8", "8", "64", ">=128", "0.5", "4", "foo"]


@pytest.fixture
def susceptibility_frame() -> pd.DataFrame:
    """
    A small susceptibility table: one identifier column, one clean MIC column,
    one MIC column with an invalid entry and one free-text column.
    """
    return pd.DataFrame({
        "isolate_id": ["1", "2", "3"],
        "amx": ["<=0.5", "8", "16"],
        "cip": ["1", "foo", "2"],
        "microorganism": ["E. coli", "K. pneumoniae", "E. coli"],
    })


@pytest.fixture
def susceptibility_csv(tmp_path, susceptibility_frame) -> str:
    path = tmp_path / "isolates.csv"
    susceptibility_frame.to_csv(path, index=False)
    return str(path)


@pytest.fixture
def restore_root_logging():
    """
    The CLI can attach a log file to the root logger; detach it afterwards.
    """
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers and isinstance(handler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
