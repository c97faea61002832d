"""Rendering of frame snapshots

Each renderer turns the frames recorded during a replay into a file:
    - `GifRenderer`: GIF animation drawn with Pillow
    - `SvgRenderer`: standalone SVG animation relying only on SMIL animations
    (no CSS animation or JavaScript needed to loop)
    - `CastRenderer`: asciicast v2 recording, rasterized by an external program

Renderers are interchangeable: they all consume the same sequence of frame
snapshots (tuples of lines, see `termreplay.term.project`) and return the path
of the file they wrote. Consecutive frames displaying the same content are
drawn once and kept on screen for the duration of the whole run (see
`frame_runs`), so every renderer produces the same number of images.
"""
import abc
import logging
import os
import shlex
import subprocess

from lxml import etree
from PIL import Image, ImageDraw, ImageFont
from wcwidth import wcswidth

from termreplay.asciicast import AsciiCastV2Event, AsciiCastV2Header

logger = logging.getLogger(__name__)

# XML namespaces
SVG_NS = 'http://www.w3.org/2000/svg'
XML_NS = 'http://www.w3.org/XML/1998/namespace'

NAMESPACES = {
    'svg': SVG_NS,
}

# Duration of the animations toggling the visibility of SVG frames
INSTANT_ANIMATION_DURATION = '0.000001s'

# Font looked up when no font path is configured for GIF rendering
DEFAULT_FONT_NAME = 'DejaVuSansMono.ttf'

# Erase the screen and move the cursor to the top left corner
CLEAR_SCREEN = '\033[2J\033[H'


class RendererError(Exception):
    pass


def set_extension(path, extension):
    """Replace the extension of `path` by `extension` (given without a dot)"""
    root, _ = os.path.splitext(path)
    if extension:
        return '{}.{}'.format(root, extension)
    return root


def _visible_content(frame):
    """Lines of `frame` as they appear on screen: trailing spaces and
    trailing empty lines are not drawn"""
    lines = [line.rstrip(' ') for line in frame]
    while lines and not lines[-1]:
        lines.pop()
    return tuple(lines)


def frame_runs(frames):
    """Group consecutive frames displaying the same content

    Return a list of (frame, run_length) tuples where `frame` is the first
    frame of the run. All renderers draw one image per run, displayed for
    `run_length` frame durations.
    """
    runs = []
    previous = None
    for frame in frames:
        content = _visible_content(frame)
        if runs and content == previous:
            first_frame, run_length = runs[-1]
            runs[-1] = (first_frame, run_length + 1)
        else:
            runs.append((frame, 1))
            previous = content
    return runs


def _seconds(ms):
    return '{:.6f}s'.format(ms / 1000)


def _make_parent_directory(path):
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)


class Renderer(abc.ABC):
    """Generic renderer

    :param output_path: Requested path of the rendered file. Its extension
    is replaced by the extension of the renderer.
    """
    extension = None

    def __init__(self, output_path):
        self.output_path = set_extension(output_path, self.extension)

    @abc.abstractmethod
    def render(self, frames, config):
        """Render `frames` and return the path of the resulting file"""
        raise NotImplementedError


class GifRenderer(Renderer):
    extension = 'gif'

    def __init__(self, output_path):
        super().__init__(output_path)
        self.font = None

    @staticmethod
    def palette_size(quality):
        """Number of colors of the GIF palette for a quality between 1 (best)
        and 30"""
        return max(16, 256 - 8 * (quality - 1))

    def _load_font(self, config):
        if config.font_path is not None:
            try:
                return ImageFont.truetype(config.font_path, config.font_size)
            except OSError as exc:
                raise RendererError('Unable to load font "{}"'
                                    .format(config.font_path)) from exc
        try:
            return ImageFont.truetype(DEFAULT_FONT_NAME, config.font_size)
        except OSError:
            logger.debug('Font {} not found, using Pillow default font'
                         .format(DEFAULT_FONT_NAME))
            return ImageFont.load_default()

    def rasterize(self, frame, config):
        """Draw a single frame snapshot and return the image"""
        try:
            image = Image.new('RGB', (config.width, config.height), config.background)
        except ValueError as exc:
            raise RendererError('Unable to create canvas') from exc

        draw = ImageDraw.Draw(image)
        for index, line in enumerate(frame):
            draw.text((config.padding_x, config.padding_y + index * config.line_height),
                      line, fill=config.foreground, font=self.font)
        return image.quantize(colors=self.palette_size(config.quality))

    def render(self, frames, config):
        self.font = self._load_font(config)
        runs = frame_runs(frames)
        if not runs:
            runs = [((), 1)]
        images = [self.rasterize(frame, config) for frame, _ in runs]

        options = {
            'save_all': True,
            'append_images': images[1:],
            'duration': [round(run_length * config.ms_per_frame) for _, run_length in runs],
        }
        if config.repeat >= 0:
            options['loop'] = config.repeat

        _make_parent_directory(self.output_path)
        images[0].save(self.output_path, format='GIF', **options)
        return self.output_path


def _frame_ids(index):
    frame_id = 'frame{}'.format(index + 1)
    return '{}enter'.format(frame_id), '{}leave'.format(frame_id)


def _svg(tag):
    return '{{{}}}{}'.format(SVG_NS, tag)


class SvgRenderer(Renderer):
    extension = 'svg'

    @staticmethod
    def _style(config):
        return """
            .frame {{
                fill: {color};
                font-family: {font_family};
                font-size: {font_size}px;
                dominant-baseline: text-before-edge;
                text-anchor: start;
                white-space: pre;
            }}
        """.format(color=config.foreground,
                   font_family=config.font_family,
                   font_size=config.font_size)

    @staticmethod
    def _make_text_tag(index, frame, run_length, run_count, config):
        """Return a hidden text element displaying `frame` during `run_length`
        frame durations once the previous frame has disappeared"""
        text_tag = etree.Element(_svg('text'), {
            'class': 'frame',
            'x': str(config.padding_x),
            'y': str(config.padding_y),
            'opacity': '0',
            '{{{}}}space'.format(XML_NS): 'preserve',
        })
        for line_number, line in enumerate(frame):
            tspan_attributes = {
                'x': str(config.padding_x),
                'dy': str(min(1, line_number) * config.line_height),
            }
            width = wcswidth(line)
            if width > 0:
                tspan_attributes['textLength'] = str(width * config.cell_width)
            tspan = etree.SubElement(text_tag, _svg('tspan'), tspan_attributes)
            tspan.text = line

        enter_id, leave_id = _frame_ids(index)
        if index == 0:
            # The first frame is displayed again once the last frame ends
            _, last_leave_id = _frame_ids(run_count - 1)
            enter_begin = '0s; {}.end'.format(last_leave_id)
        else:
            _, previous_leave_id = _frame_ids(index - 1)
            enter_begin = '{}.end'.format(previous_leave_id)

        etree.SubElement(text_tag, _svg('animate'), {
            'id': enter_id,
            'attributeName': 'opacity',
            'from': '0',
            'to': '1',
            'begin': enter_begin,
            'dur': INSTANT_ANIMATION_DURATION,
            'fill': 'freeze',
        })
        etree.SubElement(text_tag, _svg('animate'), {
            'id': leave_id,
            'attributeName': 'opacity',
            'from': '1',
            'to': '0',
            'begin': '{}.end+{}'.format(enter_id,
                                        _seconds(run_length * config.ms_per_frame)),
            'dur': INSTANT_ANIMATION_DURATION,
            'fill': 'freeze',
        })
        return text_tag

    def make_document(self, frames, config):
        """Return the root element of the SVG animation"""
        runs = frame_runs(frames)
        root = etree.Element(_svg('svg'), {
            'viewBox': '0 0 {} {}'.format(config.width, config.height),
            'width': str(config.width),
            'height': str(config.height),
        }, nsmap={None: SVG_NS})

        style = etree.SubElement(root, _svg('style'))
        style.text = etree.CDATA(self._style(config))
        etree.SubElement(root, _svg('rect'), {
            'width': str(config.width),
            'height': str(config.height),
            'fill': config.background,
        })

        for index, (frame, run_length) in enumerate(runs):
            root.append(self._make_text_tag(index, frame, run_length, len(runs), config))
        return root

    def render(self, frames, config):
        root = self.make_document(frames, config)
        _make_parent_directory(self.output_path)
        with open(self.output_path, 'wb') as output_file:
            output_file.write(etree.tostring(root, xml_declaration=True, encoding='UTF-8'))
        return self.output_path


class CastRenderer(Renderer):
    """Write frames to an asciicast v2 recording and rasterize the recording
    with the external command configured in `config.cast_command`

    The placeholders {input} and {output} of the command are replaced by the
    path of the recording and the path of the GIF animation. If no command is
    configured, the path of the recording is returned.
    """
    extension = 'cast'
    raster_extension = 'gif'

    @staticmethod
    def records(frames, config):
        """Yield the asciicast records of the recording"""
        yield AsciiCastV2Header(version=2,
                                width=config.columns,
                                height=config.line_count,
                                title=config.title)
        index = 0
        for frame, run_length in frame_runs(frames):
            yield AsciiCastV2Event(time=round(index * config.ms_per_frame / 1000, 6),
                                   event_type='o',
                                   event_data=CLEAR_SCREEN + '\r\n'.join(frame))
            index += run_length

    def rasterize(self, command, cast_path):
        raster_path = set_extension(cast_path, self.raster_extension)
        args = [arg.format(input=cast_path, output=raster_path)
                for arg in shlex.split(command)]
        logger.info('Rasterizing recording with "{}"'.format(' '.join(args)))
        try:
            subprocess.run(args, check=True, stdin=subprocess.DEVNULL)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise RendererError('Unable to rasterize recording "{}": {}'
                                .format(cast_path, exc)) from exc
        return raster_path

    def render(self, frames, config):
        _make_parent_directory(self.output_path)
        with open(self.output_path, 'w') as cast_file:
            for record in self.records(frames, config):
                print(record.to_json_line(), file=cast_file)

        if not config.cast_command:
            return self.output_path
        return self.rasterize(config.cast_command, self.output_path)


RENDERERS = {
    'gif': GifRenderer,
    'svg': SvgRenderer,
    'cast': CastRenderer,
}


def select_renderer(output_path, default):
    """Return a renderer for `output_path`

    The renderer is chosen based on the extension of the path and falls back
    to the renderer named `default` if the extension is not recognized.
    """
    _, extension = os.path.splitext(output_path)
    renderer_class = RENDERERS.get(extension[1:].lower())
    if renderer_class is None:
        try:
            renderer_class = RENDERERS[default]
        except KeyError:
            raise RendererError('Unknown renderer: {}'.format(default)) from None
    return renderer_class(output_path)
