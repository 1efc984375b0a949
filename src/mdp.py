#!/usr/bin/env python3
'''
mdp : render a markdown file (.md) to sanitized HTML and preview it in the
default application of the platform
'''

from dataclasses import dataclass
from typing import IO, List, Optional, Tuple
import argparse
import logging
import os
import re
import shutil
import sys
import tempfile
import time

# pylint: disable=import-error
from bleach.linkifier import Linker
from bs4 import BeautifulSoup
from jinja2 import Environment, StrictUndefined, Template, TemplateError
from markupsafe import Markup
from rich.console import Console
import bleach
import markdown

from utils import check_exists, execute, setup_logging

TITLE = 'Markdown Preview Tool'
TEMP_PREFIX = 'mdp'
TEMP_SUFFIX = '.html'

# Seconds to wait after the viewer returns so that it has a chance to read
# the file before we delete it.
PREVIEW_DELAY = 2

DEFAULT_TEMPLATE = '''<!DOCTYPE html>
<html>
  <head>
    <meta http-equiv="content-type" content="text/html; charset=utf-8">
    <title>{{ title }}</title>
  </head>
  <body>
  File name: {{ filename }}
{{ body }}
  </body>
</html>
'''

MARKDOWN_EXTENSIONS = ['fenced_code', 'tables', 'sane_lists']

# Allow-list for user generated content
UGC_TAGS = [
    'a', 'abbr', 'acronym', 'b', 'bdi', 'bdo', 'blockquote', 'br',
    'caption', 'cite', 'code', 'col', 'colgroup', 'dd', 'del', 'details',
    'dfn', 'div', 'dl', 'dt', 'em', 'figcaption', 'figure', 'h1', 'h2',
    'h3', 'h4', 'h5', 'h6', 'hr', 'i', 'img', 'ins', 'kbd', 'li', 'mark',
    'ol', 'p', 'pre', 'q', 's', 'samp', 'small', 'span', 'strike',
    'strong', 'sub', 'summary', 'sup', 'table', 'tbody', 'td', 'tfoot',
    'th', 'thead', 'time', 'tr', 'tt', 'u', 'ul', 'var',
]
UGC_ATTRIBUTES = {
    '*': ['title', 'lang', 'dir'],
    'a': ['href', 'title', 'rel'],
    'abbr': ['title'],
    'code': ['class'],
    'col': ['align', 'span', 'width'],
    'colgroup': ['align', 'span', 'width'],
    'img': ['src', 'alt', 'title', 'width', 'height', 'align'],
    'ol': ['start', 'type'],
    'q': ['cite'],
    'blockquote': ['cite'],
    'td': ['align', 'colspan', 'rowspan'],
    'th': ['align', 'colspan', 'rowspan', 'scope'],
    'time': ['datetime'],
}
UGC_PROTOCOLS = ['http', 'https', 'mailto']

# Removed together with their content
DROPPED_ELEMENTS = ['script', 'style', 'noscript', 'template']

# Bare text is only turned into a link when it carries a scheme, so names
# like README.md stay plain text.
SCHEME_URL_RE = re.compile(r'''\(*\bhttps?://[^\s<>"`{}|\\^]+''',
                           re.IGNORECASE)


class MdpError(Exception):
    '''Base class of the errors raised by mdp'''


class UnsupportedPlatformError(MdpError):
    '''There is no known way to open a file on this operating system'''


class PreviewError(MdpError):
    '''The viewer is missing or failed to open the file'''


@dataclass(frozen=True)
class RunConfig:
    '''Options of a single run, parsed from the command line'''
    filename: str
    template: Optional[str] = None
    skip_preview: bool = False
    verbose: bool = False
    logfile: Optional[str] = None


@dataclass(frozen=True)
class RenderContext:
    '''The values visible to the page template'''
    title: str
    body: Markup
    filename: str


@dataclass(frozen=True)
class Opener:
    '''A command which opens a file with the default application'''
    command: str
    params: Tuple[str, ...] = ()

    def open(self, filename: str, delay: float = PREVIEW_DELAY) -> None:
        '''Open the file and block for a while

        Args:
            filename (str): the file to open

            delay (float): seconds to sleep after the command returns

        Raises:
            PreviewError: the command is not found or it failed
        '''
        path = shutil.which(self.command)
        if path is None:
            raise PreviewError(f'{self.command} not found in PATH')

        cmd = [path, *self.params, filename]
        logging.debug(' '.join(cmd))
        succeeded = execute(cmd, discard_error=True)

        # The viewer may still be loading the file after the command
        # returns, and the caller removes the file as soon as we are done.
        time.sleep(delay)
        if not succeeded:
            raise PreviewError(f'Unable to open {filename} with {self.command}')


OPENERS = {
    'linux': Opener('xdg-open'),
    'darwin': Opener('open'),
    'win32': Opener('cmd.exe', ('/C', 'start')),
}


def get_opener(platform: Optional[str] = None) -> Opener:
    '''Look up the opener of the operating system

    Args:
        platform (str): a sys.platform value, the running one by default

    Returns:
        Opener: the opener of the platform
    '''
    platform = platform or sys.platform
    # Older interpreters report linux2, linux3, ...
    if platform.startswith('linux'):
        platform = 'linux'
    opener = OPENERS.get(platform)
    if opener is None:
        raise UnsupportedPlatformError('OS not supported')
    return opener


def preview(filename: str, platform: Optional[str] = None,
            delay: float = PREVIEW_DELAY) -> None:
    '''Open the file with the default application of the platform'''
    get_opener(platform).open(filename, delay=delay)


def sanitize(html: str) -> str:
    '''Strip everything outside the user generated content allow-list and
    mark links as nofollow'''
    # Stripping a tag keeps its text, so drop these elements first.
    soup = BeautifulSoup(html, 'html.parser')
    for tag in soup(DROPPED_ELEMENTS):
        tag.decompose()

    clean = bleach.clean(str(soup), tags=UGC_TAGS, attributes=UGC_ATTRIBUTES,
                         protocols=UGC_PROTOCOLS, strip=True,
                         strip_comments=True)
    linker = Linker(url_re=SCHEME_URL_RE, skip_tags=['pre', 'code'],
                    parse_email=False)
    return linker.linkify(clean)


def load_template(template_path: Optional[str] = None,
                  default_template: str = DEFAULT_TEMPLATE) -> Template:
    '''Compile the page template

    Args:
        template_path (str): an alternate template file. If it is not given,
                             default_template is used.

        default_template (str): the text of the default template

    Returns:
        Template: the compiled template
    '''
    env = Environment(autoescape=True, undefined=StrictUndefined,
                      keep_trailing_newline=True)
    if not template_path:
        return env.from_string(default_template)

    check_exists(template_path, is_file=True)
    logging.debug('Loading template %s', template_path)
    with open(template_path, encoding='utf-8') as template_file:
        return env.from_string(template_file.read())


def parse_content(content: bytes, template: Template, out_name: str) -> bytes:
    '''Convert markdown to a complete HTML page

    Args:
        content (bytes): the markdown text

        template (Template): the page template

        out_name (str): the name of the rendered file shown on the page

    Returns:
        bytes: the HTML page encoded in UTF-8
    '''
    html = markdown.markdown(content.decode('utf-8'),
                             extensions=MARKDOWN_EXTENSIONS,
                             output_format='html')
    context = RenderContext(title=TITLE, body=Markup(sanitize(html)),
                            filename=out_name)
    page = template.render(title=context.title, body=context.body,
                           filename=context.filename)
    return page.encode('utf-8')


def create_temp_file() -> str:
    '''Create an empty mdp*.html file in the temp directory

    Returns:
        str: the name of the new file
    '''
    handle, out_name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX)
    os.close(handle)
    return out_name


def save_html(out_name: str, data: bytes) -> None:
    '''Write the page to the file'''
    with open(out_name, 'wb') as out_file:
        out_file.write(data)
    os.chmod(out_name, 0o644)


def run(config: RunConfig, default_template: str = DEFAULT_TEMPLATE,
        out: Optional[IO[str]] = None) -> None:
    '''Render the markdown file and preview it

    Args:
        config (RunConfig): the options of this run

        default_template (str): the template used when config.template is
                                not set

        out (IO[str]): where the name of the rendered file is printed,
                       stdout by default
    '''
    with open(config.filename, 'rb') as input_file:
        content = input_file.read()

    # Fail on a broken template before anything is written to disk.
    template = load_template(config.template, default_template)

    out_name = create_temp_file()
    print(out_name, file=out or sys.stdout)

    try:
        save_html(out_name, parse_content(content, template, out_name))
    except BaseException:
        os.remove(out_name)
        raise

    if config.skip_preview:
        logging.debug('Skipped preview, keeping %s', out_name)
        return

    try:
        preview(out_name)
    finally:
        os.remove(out_name)


def parse_arguments(argv: Optional[List[str]] = None) -> RunConfig:
    '''Parse the command line arguments

    Args:
        argv (List[str]): the arguments, sys.argv[1:] by default

    Return:
        RunConfig: the options of this run
    '''
    parser = argparse.ArgumentParser(
            description='Preview a markdown file as HTML')
    parser.add_argument('-file', action='store', dest='filename',
                        help='Markdown file to preview')
    parser.add_argument('-s', action='store_true', dest='skip_preview',
                        help='Skip auto preview')
    parser.add_argument('-t', action='store', dest='template',
                        help='Alternate template name')
    parser.add_argument('-l', '--logfile', action='store', dest='logfile',
                        help='log the message to the file instead of console')
    parser.add_argument('-v', '--verbose', action='store_true',
                        dest='verbose', help='print more details')
    args = parser.parse_args(argv)

    if not args.filename:
        parser.print_help(sys.stderr)
        sys.exit(1)

    return RunConfig(filename=args.filename, template=args.template,
                     skip_preview=args.skip_preview, verbose=args.verbose,
                     logfile=args.logfile)


def main(argv: Optional[List[str]] = None) -> None:
    '''The main function'''
    config = parse_arguments(argv)
    setup_logging(config.logfile, verbose=config.verbose)

    default_template = os.environ.get('DEFAULT_TEMPLATE') or DEFAULT_TEMPLATE

    try:
        run(config, default_template)
    except (MdpError, OSError, TemplateError, UnicodeDecodeError) as error:
        logging.debug('Run failed', exc_info=True)
        Console(stderr=True).print(str(error), style='red', markup=False,
                                   highlight=False, soft_wrap=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
