from .session import MailboxSession, SessionState, create_client, probe_mailbox

__all__ = ['MailboxSession', 'SessionState', 'create_client', 'probe_mailbox']
