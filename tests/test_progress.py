"""进度显示与日志配置测试"""

import io
import logging

import pytest

from pubnet.logging_config import setup_logging
from pubnet.progress import CoolingBar, progress_step
from pubnet.simulation import Snapshot


class TestCoolingBar:

    def test_fraction(self):
        bar = CoolingBar(alpha_min=0.001)
        assert bar.fraction(1.0) == 0.0
        assert bar.fraction(0.0005) == 1.0
        assert bar.fraction(0.001 ** 0.5) == pytest.approx(0.5)

    def test_draws_every_n_ticks(self):
        stream = io.StringIO()
        bar = CoolingBar(every=10, stream=stream)
        for tick in range(1, 10):
            bar.update(Snapshot(tick, 0.5, {}))
        assert stream.getvalue() == ''
        bar.update(Snapshot(10, 0.5, {}))
        assert 'tick   10' in stream.getvalue()
        bar.close()
        assert stream.getvalue().endswith('\n')


class TestProgressStep:

    def test_success(self, capsys):
        with progress_step('读取'):
            pass
        assert '读取' in capsys.readouterr().out

    def test_error_is_reraised(self, capsys):
        with pytest.raises(RuntimeError):
            with progress_step('失败步骤'):
                raise RuntimeError('boom')
        assert 'boom' in capsys.readouterr().out


class TestLogging:

    def test_setup_is_idempotent(self, tmp_path):
        log_file = tmp_path / 'run.log'
        setup_logging(logging.INFO)
        logger = setup_logging(logging.DEBUG, str(log_file))
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        logging.getLogger('pubnet.session').info('hello')
        for h in logger.handlers:
            h.flush()
        assert 'hello' in log_file.read_text(encoding='utf-8')
        setup_logging()
