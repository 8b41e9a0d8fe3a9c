"""
SMTP mail sender that DKIM-signs every outgoing message
"""
import copy
import smtplib
import ssl
from email import policy
from email.message import EmailMessage
from email.utils import formatdate, getaddresses, make_msgid, parseaddr

from ..errors import MailAuthenticationError, MailConnectionError, MailSendError
from ..utils.log import get_logger

logger = get_logger('sender')

DEFAULT_ENCODING = 'utf-8'
DEFAULT_TIMEOUT = 60.0

RECIPIENT_HEADERS = ('To', 'Cc', 'Bcc')


class DkimMailSender:
    """Delivers messages over SMTP after signing them with a DkimSigner.

    ``port`` and ``default_encoding`` stay ``None`` unless configured, in
    which case smtplib's protocol default port and utf-8 are used.
    """

    def __init__(self, signer):
        self.signer = signer
        self.host = None
        self.port = None
        self.username = None
        self.password = None
        self.protocol = 'smtp'
        self.default_encoding = None
        self.mail_properties = {}

    # --- Properties ---
    def _property(self, name, default=None):
        return self.mail_properties.get(f'mail.{self.protocol}.{name}', default)

    def _flag(self, name):
        value = self._property(name)
        return value is not None and str(value).strip().lower() == 'true'

    def _timeout(self):
        # JavaMail-style timeouts are in milliseconds
        for name in ('connectiontimeout', 'timeout'):
            value = self._property(name)
            if value:
                try:
                    return int(value) / 1000.0
                except ValueError:
                    logger.warning(f"Ignoring non-numeric mail.{self.protocol}.{name}={value!r}")
        return DEFAULT_TIMEOUT

    # --- Messages ---
    def create_message(self, subject, body, sender, recipients, subtype='plain'):
        """Build an EmailMessage encoded with the default encoding"""
        msg = EmailMessage()
        msg['Subject'] = subject
        msg['From'] = sender
        msg['To'] = ', '.join(recipients) if isinstance(recipients, (list, tuple)) else recipients
        msg['Date'] = formatdate(localtime=True)
        msg['Message-ID'] = make_msgid()
        msg.set_content(body, subtype=subtype, charset=self.default_encoding or DEFAULT_ENCODING)
        return msg

    def envelope_sender(self, msg):
        configured = self._property('from')
        if configured:
            return configured
        _name, addr = parseaddr(msg.get('Sender') or msg.get('From') or '')
        return addr

    @staticmethod
    def envelope_recipients(msg):
        values = []
        for header in RECIPIENT_HEADERS:
            values.extend(msg.get_all(header, []))
        return [addr for _name, addr in getaddresses(values) if addr]

    @staticmethod
    def to_bytes(msg):
        # Bcc must not travel with the message
        if 'Bcc' in msg:
            msg = copy.deepcopy(msg)
            del msg['Bcc']
        return msg.as_bytes(policy=policy.SMTP)

    # --- Connection ---
    def connect(self):
        """Open, secure and authenticate an SMTP connection"""
        host = self.host or 'localhost'
        port = self.port or 0
        timeout = self._timeout()
        local_hostname = self._property('localhost')
        try:
            if self.protocol == 'smtps':
                server = smtplib.SMTP_SSL(host, port, local_hostname=local_hostname, timeout=timeout,
                                          context=ssl.create_default_context())
            else:
                server = smtplib.SMTP(host, port, local_hostname=local_hostname, timeout=timeout)
        except (OSError, smtplib.SMTPException) as e:
            raise MailConnectionError(f"Could not connect to {host}:{port or 'default'}: {e}")

        try:
            server.ehlo_or_helo_if_needed()
            if self.protocol == 'smtp' and (self._flag('starttls.enable') or self._flag('starttls.required')):
                if server.has_extn('starttls'):
                    server.starttls(context=ssl.create_default_context())
                    server.ehlo()
                elif self._flag('starttls.required'):
                    raise MailConnectionError(f"{host} does not offer STARTTLS")
                else:
                    logger.warning(f"{host} does not offer STARTTLS, continuing in plaintext")

            auth = self._property('auth')
            if self.username and str(auth).strip().lower() != 'false':
                server.login(self.username, self.password or '')
        except smtplib.SMTPAuthenticationError as e:
            _close(server)
            raise MailAuthenticationError(f"Authentication failed for {self.username}@{host}: {e}")
        except (OSError, smtplib.SMTPException) as e:
            _close(server)
            raise MailConnectionError(f"SMTP session setup with {host} failed: {e}")
        except MailConnectionError:
            _close(server)
            raise

        return server

    def test_connection(self):
        server = self.connect()
        try:
            server.noop()
        finally:
            _quit(server)
        logger.info(f"Mail server {self.host or 'localhost'} is reachable")

    # --- Sending ---
    def send_raw(self, mail_from, rcpt_to, raw_message):
        """Sign and deliver raw message bytes"""
        signed = self.signer.sign(raw_message)
        server = self.connect()
        try:
            refused = server.sendmail(mail_from or '', list(rcpt_to), signed)
        except smtplib.SMTPException as e:
            raise MailSendError(f"Delivery failed: {e}")
        finally:
            _quit(server)
        if refused:
            logger.warning(f"Recipients refused: {sorted(refused)}")
        return refused

    def send(self, *messages):
        """Sign and deliver messages over a single connection"""
        if not messages:
            return
        failed = []
        server = self.connect()
        try:
            for msg in messages:
                try:
                    mail_from = self.envelope_sender(msg)
                    recipients = self.envelope_recipients(msg)
                    if not recipients:
                        raise MailSendError("Message has no recipients")
                    signed = self.signer.sign(self.to_bytes(msg))
                    refused = server.sendmail(mail_from, recipients, signed)
                    if refused:
                        logger.warning(f"Recipients refused: {sorted(refused)}")
                    logger.info(f"Sent {msg.get('Message-ID', '<no id>')} to {len(recipients)} recipient(s)")
                except (smtplib.SMTPException, MailSendError) as e:
                    logger.error(f"Failed to send {msg.get('Message-ID', '<no id>')}: {e}")
                    failed.append((msg, e))
        finally:
            _quit(server)

        if failed:
            raise MailSendError(f"{len(failed)} of {len(messages)} message(s) failed", failed)


def _quit(server):
    try:
        server.quit()
    except (smtplib.SMTPException, OSError):
        server.close()


def _close(server):
    try:
        server.close()
    except OSError:
        pass
