import io

import pytest

from crack_password_pool.io.output import OperatorOutput
from crack_password_pool.pipeline.runner import CrackPasswordPool

from tests import SMALL_POOL_CONFIG
from tests.fakes import FakeTester, InMemoryDictionary


@pytest.fixture
def output_stream():
    return io.StringIO()


@pytest.fixture
def operator_output(output_stream):
    return OperatorOutput(stream=output_stream)


@pytest.fixture
def make_cracker(operator_output):
    """Build a CrackPasswordPool over in-memory stores and a scripted tester."""

    def _make(candidates, script=None, tested=(), pool_config=None, delay=0.0, **kwargs):
        tester = kwargs.pop("tester", None) or FakeTester(script, delay=delay)
        password_dictionary = InMemoryDictionary(candidates)
        tested_dictionary = kwargs.pop("tested_dictionary", None) or InMemoryDictionary(tested)
        cracker = CrackPasswordPool(
            tester=tester,
            password_dictionary=password_dictionary,
            tested_dictionary=tested_dictionary,
            pool_config={**SMALL_POOL_CONFIG, **(pool_config or {})},
            output=operator_output,
            **kwargs,
        )
        return cracker, tester, tested_dictionary

    return _make
