'''
White/Black lists of loggers. httpx and httpcore are too chatty on DEBUG
level, the command line tool hides them with Blacklist.
'''

import logging

# Loggers of the HTTP client stack
HTTP_LOGGERS = ('httpx', 'httpcore', 'hpack')


class Whitelist(logging.Filter):
    '''Pass only records of these loggers (and their children).'''
    def __init__(self, *whitelist):
        super().__init__()
        self.whitelist = [logging.Filter(name) for name in whitelist]

    def filter(self, record):
        return any(f.filter(record) for f in self.whitelist)

class Blacklist(logging.Filter):
    '''Drop records of these loggers (and their children).'''
    def __init__(self, *blacklist):
        super().__init__()
        self.blacklist = [logging.Filter(name) for name in blacklist]

    def filter(self, record):
        return not any(f.filter(record) for f in self.blacklist)

def add_filter_to_all_handlers(filter_list: logging.Filter):
    '''Add the filter to all handlers of the root logger.'''
    for handler in logging.root.handlers:
        handler.addFilter(filter_list)
