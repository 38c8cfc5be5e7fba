"""Process-wide logging setup."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional


_logging_initialized = False
_current_config: Dict[str, Any] = {}

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def is_logging_configured() -> bool:
	return _logging_initialized


def configure_logging(
	log_level: str = "INFO",
	log_file: Optional[str] = None,
	console_output: bool = True,
	force_reconfigure: bool = False
) -> None:
	"""
	Configure the root logger once per process.

	Args:
		log_level: level name such as "INFO" or "DEBUG"
		log_file: optional path of a file to append to
		console_output: attach a stderr handler
		force_reconfigure: replace an existing configuration
	"""
	global _logging_initialized, _current_config

	if _logging_initialized and not force_reconfigure:
		return

	numeric_level = getattr(logging, log_level.upper(), None)
	if not isinstance(numeric_level, int):
		raise ValueError(f'Invalid log level: {log_level}')

	handlers = []
	if console_output:
		console_handler = logging.StreamHandler()
		console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
		handlers.append(console_handler)
	if log_file:
		file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
		file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
		handlers.append(file_handler)

	root_logger = logging.getLogger()
	for handler in root_logger.handlers[:]:
		root_logger.removeHandler(handler)
	root_logger.setLevel(numeric_level)
	for handler in handlers:
		root_logger.addHandler(handler)

	# bcrypt version probing in passlib is noisy at startup
	logging.getLogger('passlib').setLevel(logging.ERROR)

	_current_config = {
		'log_level': log_level,
		'log_file': log_file,
		'console_output': console_output,
		'configured_at': datetime.now()
	}
	_logging_initialized = True
	logging.getLogger(__name__).info("Logging configured at %s", log_level)


def get_current_config() -> Dict[str, Any]:
	return _current_config.copy()


def reset_logging() -> None:
	global _logging_initialized, _current_config
	root_logger = logging.getLogger()
	for handler in root_logger.handlers[:]:
		root_logger.removeHandler(handler)
	_logging_initialized = False
	_current_config = {}
