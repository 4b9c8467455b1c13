import os
import time
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from concurrent.futures import ProcessPoolExecutor, as_completed

from .copier import copy_tree
from .errors import InputNotFoundError
from .loaders import load_data, load_page, load_partials
from .models import Site
from .runner import run_command
from .settings import BuildConfig
from .stages import Pipeline
from .writer import OutputWriter

# Per-worker render state, set up once by initializer() in each worker process
thread_local = threading.local()


class PageWorker:
    """Renders and writes pages against one Site snapshot."""

    def __init__(self, config, site, partials):
        self.pipeline = Pipeline.from_config(config, partials)
        self.site = site.view()
        self.writer = OutputWriter(config.input_dir, config.output_dir)

    def render(self, page):
        result = self.pipeline.run(page, self.site)
        if result is None:
            return None
        self.writer.write_page(result)
        return result


def initializer(config, site, partials):
    """Initialize a PageWorker in thread-local storage for each worker process."""
    thread_local.worker = PageWorker(config, site, partials)


def render_page(page):
    """Run one page through the pipeline and write it. Returns None for dropped pages."""
    return thread_local.worker.render(page)


@dataclass
class BuildReport:
    pages_written: int = 0
    pages_skipped: int = 0
    files_propagated: int = 0
    files_shadowed: int = 0
    data_records: int = 0
    elapsed: float = 0.0


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages (and anything louder) in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Site build completed in",
            "Total pages written:",
            "Total files propagated:",
            "Using multiprocessing for",
            "Running ",
            "Copying ",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


class PageSmith:
    def __init__(self, config=None):
        self.config = config or BuildConfig()
        self.workers = self.config.workers or os.cpu_count() or 1
        self.writer = OutputWriter(self.config.input_dir, self.config.output_dir)
        self.setup_logging()

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('PageSmith')
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(console_handler)

            # File handler for all logs
            if self.config.log_dir:
                os.makedirs(self.config.log_dir, exist_ok=True)
                log_filename = datetime.now().strftime('pagesmith_%Y-%m-%d_%H-%M-%S.log')
                file_handler = logging.FileHandler(os.path.join(self.config.log_dir, log_filename))
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
                self.logger.addHandler(file_handler)

    def discover_inputs(self):
        """
        List (absolute path, relative path) for every input file.

        Hidden entries, the data/layout/include directories and an output
        directory nested in the input tree are skipped.
        """
        config = self.config
        if not os.path.isdir(config.input_dir):
            raise InputNotFoundError("Input directory does not exist", config.input_dir)

        skipped = {
            os.path.realpath(path)
            for path in (config.data_dir, config.layout_dir, config.include_dir, config.output_dir)
        }

        inputs = []
        for dirpath, dirnames, filenames in os.walk(config.input_dir):
            dirnames[:] = sorted(
                name for name in dirnames
                if not name.startswith('.') and os.path.realpath(os.path.join(dirpath, name)) not in skipped
            )
            for filename in sorted(filenames):
                if filename.startswith('.'):
                    continue
                path = os.path.join(dirpath, filename)
                relative = os.path.relpath(path, config.input_dir).replace(os.sep, '/')
                inputs.append((path, relative))
        return inputs

    def _run_tasks(self, func, tasks, initializer=None, initargs=()):
        """Run func over tasks, in worker processes once the workload is large enough."""
        if len(tasks) >= self.config.parallel_threshold and self.workers > 1:
            self.logger.info(f"Using multiprocessing for {len(tasks)} files with {self.workers} workers")
            return self._run_with_multiprocessing(func, tasks, initializer, initargs)
        self.logger.debug(f"Using single-threaded processing for {len(tasks)} files")
        return self._run_single_threaded(func, tasks, initializer, initargs)

    def _run_single_threaded(self, func, tasks, initializer, initargs):
        if initializer is not None:
            initializer(*initargs)
        return [func(*args) for args in tasks]

    def _run_with_multiprocessing(self, func, tasks, initializer, initargs):
        results = [None] * len(tasks)
        with ProcessPoolExecutor(
            max_workers=self.workers,
            initializer=initializer,
            initargs=initargs
        ) as executor:
            futures = {executor.submit(func, *args): index for index, args in enumerate(tasks)}
            try:
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
            except BaseException:
                # First fatal error wins; don't start anything still queued
                for future in futures:
                    future.cancel()
                raise
        return results

    def load_site(self, inputs):
        """Loading phase. Everything here completes before any page is rendered."""
        config = self.config
        renderers = config.renderers

        loaded = self._run_tasks(load_page, [
            (path, relative, config.default_vars, renderers.template, config.frontmatter_format)
            for path, relative in inputs
        ])

        fragments = tuple(config.fragment_extensions)
        pages, files = [], []
        for (path, relative), page in zip(inputs, loaded):
            if page is None:
                # Fragments only exist to be included, with or without frontmatter
                if relative.lower().endswith(fragments):
                    self.logger.debug(f"Skipping template fragment {relative}")
                    continue
                files.append(relative)
            else:
                pages.append(page)

        records = load_data(config.data_dir) if renderers.data else []
        partials = load_partials(config.include_dir) if renderers.template or renderers.layout else {}

        site = Site.snapshot(pages, files, records, config.mount)
        self.logger.debug(f"Loaded {len(pages)} pages, {len(files)} plain files, {len(records)} data records")
        return site, partials

    def build(self):
        """Main build process."""
        start_time = time.time()
        config = self.config
        self.logger.info("Starting site build...")

        for spec in config.commands:
            run_command(spec)

        inputs = self.discover_inputs()
        self.writer.prepare()

        site, partials = self.load_site(inputs)

        rendered = self._run_tasks(
            render_page,
            [(page,) for page in site.pages],
            initializer=initializer,
            initargs=(config, site, partials),
        )

        report = BuildReport(data_records=len(site.data))
        report.pages_written = sum(1 for page in rendered if page is not None)
        report.pages_skipped = len(rendered) - report.pages_written

        # Pages are on disk now, so propagation can't overwrite a rendered page
        for name in site.files:
            if self.writer.propagate(name):
                report.files_propagated += 1
            else:
                report.files_shadowed += 1

        for spec in config.copy:
            copy_tree(spec, config.output_dir)

        report.elapsed = time.time() - start_time
        self.logger.info(f"Site build completed in {report.elapsed:.6f} seconds.")
        self.logger.info(f"Total pages written: {report.pages_written}")
        self.logger.info(f"Total files propagated: {report.files_propagated}")
        return report
