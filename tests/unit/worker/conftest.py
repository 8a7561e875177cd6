import pytest
from unittest.mock import AsyncMock, MagicMock


@pytest.fixture
def mock_session_factory():
    """sessionmaker() return value yielding a mock async session"""
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=session)


def ok_result(value):
    result = MagicMock()
    result.is_err.return_value = False
    result.value = value
    return result


def err_result(message: str):
    result = MagicMock()
    result.is_err.return_value = True
    result.error = MagicMock(message=message)
    return result


@pytest.fixture
def make_ok_result():
    return ok_result


@pytest.fixture
def make_err_result():
    return err_result
