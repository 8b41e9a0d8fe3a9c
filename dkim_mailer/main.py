"""
Main entry point for dkim-mailer

Builds the signing mail sender from the configured properties and reports
what was wired. Exits non-zero when the configuration is unusable.
"""
import os
import sys

from . import config
from .autoconfigure import configure
from .errors import DkimMailerError
from .utils.log import setup_logging


def main(argv=None, environ=None):
    environ = os.environ if environ is None else environ
    argv = sys.argv[1:] if argv is None else argv

    logger = setup_logging(level=config.log_level(environ), log_dir=environ.get(config.LOG_DIR_ENV))

    logger.info("=" * 60)
    logger.info("STARTING DKIM MAILER")
    logger.info("=" * 60)

    try:
        properties = config.load_properties(path=argv[0] if argv else None, environ=environ)
        context = configure(properties)
    except DkimMailerError as e:
        logger.error(f"Fatal configuration error: {e}")
        return 1
    except OSError as e:
        logger.error(f"Could not read configuration: {e}")
        return 1

    if not context.active:
        logger.info("Mail will not be DKIM signed")
        return 0

    sender = context.mail_sender
    logger.info(f"Signer: {context.signer!r}")
    logger.info(f"Transport: {sender.protocol}://{sender.host or 'localhost'}:{sender.port or 'default'}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
