"""IMAP session handling and message parsing.

- IMAP: one time-bounded session per folder pass (connect, select,
  search, fetch, close)
- Parser: raw RFC822 bytes into NormalizedEmail records

Usage Examples
----------------

Read one folder:
    >>> from mailsync.core.email.imap import MailboxSession
    >>>
    >>> async with MailboxSession(config) as session:
    ...     await session.select_folder("INBOX")
    ...     uids = await session.search("ALL")

Parse a message:
    >>> from mailsync.core.email.parser import MessageNormalizer
    >>>
    >>> email = MessageNormalizer().normalize(raw_bytes)
    >>> print(email.subject)

Notes
-----
- All session operations are asynchronous and require 'await'
- Fetches use BODY.PEEK, so remote read state is never changed
- Messages without a Message-ID cannot be deduplicated and are skipped
"""
