"""ロガー設定のユニットテスト"""

from k1s0_session_lifecycle.logger import new_logger


def test_new_logger_json_format() -> None:
    """JSON フォーマットのロガーが作成できること。"""
    logger = new_logger(level="INFO", format="json")
    assert logger is not None


def test_new_logger_text_format() -> None:
    """テキストフォーマットのロガーが作成できること。"""
    logger = new_logger(level="DEBUG", format="text")
    assert logger is not None


def test_new_logger_bind() -> None:
    """bind したロガーでイベントを記録できること。"""
    logger = new_logger()
    bound = logger.bind(email="agent@example.com")
    bound.info("signed in")
