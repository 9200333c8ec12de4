"""Logging setup for the tibia-maps command line."""

import logging

PROJECT = 'tibiamaps'
TOPICS = {'convert', 'storage', 'cli'}


def setup_logging(level=logging.INFO, color_logs=False, debug_topics=None, log_file: str = None):
    """Configures the root logger: console always, file optionally."""
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        for h in root_logger.handlers[:]:
            root_logger.removeHandler(h)
            h.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(TopicFormatter(use_color=color_logs))
    root_logger.addHandler(console_handler)
    root_logger.setLevel(level)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode='w')
            file_handler.setFormatter(TopicFormatter(use_color=False))
            root_logger.addHandler(file_handler)
            logging.getLogger(PROJECT).info('Logging to file: %s', log_file)
        except OSError as e:
            logging.getLogger(PROJECT).error('Could not open log file %s: %s', log_file, e)

    logging.getLogger('PIL').setLevel(logging.WARNING)

    if debug_topics:
        wanted = [t.strip() for t in debug_topics.split(',')]
        if 'all' in wanted:
            selected = TOPICS
        else:
            selected = {topic for w in wanted for topic in TOPICS if topic.startswith(w)}
        for topic in selected:
            logging.getLogger(f'{PROJECT}.{topic}').setLevel(logging.DEBUG)


class TopicFormatter(logging.Formatter):
    """Prefixes each line with the level and the logger topic, e.g.

        WARNI:conver: 12712113: missing marker block
    """

    COLORS = {
        logging.DEBUG: '\033[38;5;252m',
        logging.INFO: '\033[38;5;111m',
        logging.WARNING: '\033[38;5;229m',
        logging.ERROR: '\033[38;5;210m',
        logging.CRITICAL: '\033[38;5;217m',
    }

    def __init__(self, use_color=False):
        super().__init__()
        self.use_color = use_color

    def format(self, record):
        if self.use_color:
            color = self.COLORS.get(record.levelno, '')
            bold, reset = '\033[1m', '\033[0m'
        else:
            color = bold = reset = ''

        name_parts = record.name.split('.')
        topic = name_parts[1][:6] if len(name_parts) > 1 else record.name[:6]
        prefix = f'{color}{record.levelname[:5]:<5}{reset}:{bold}{topic:<6}{reset}: '

        message = record.getMessage()
        if record.exc_info:
            message = f'{message}\n{self.formatException(record.exc_info)}'
        return '\n'.join(f'{prefix}{line}' for line in message.split('\n'))
