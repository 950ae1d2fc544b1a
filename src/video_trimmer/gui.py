"""Main GUI for Video Trimmer application."""
import sys
from pathlib import Path

from PyQt6.QtCore import QThread, pyqtSignal
from PyQt6.QtGui import QAction, QColor, QKeySequence, QPainter
from PyQt6.QtMultimediaWidgets import QVideoWidget
from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QGroupBox, QLabel, QPushButton, QProgressBar, QFileDialog, QMessageBox
)

from .config import SUPPORTED_FORMATS, TrimmerSettings
from .errors import ExportError, TrimmerError
from .ffmpeg_manager import check_ffmpeg, check_ffprobe, get_ffmpeg_path
from .file_service import FileService
from .logger import get_logger, log_exception
from .models import ExportRequest, ExportResult, SessionState, VideoAsset
from .qt_player import QtPlayer
from .session import TrimSession


class ScanWorker(QThread):
    """Copies and scans a source off the UI thread."""

    scanned = pyqtSignal(int, object)  # load id, VideoAsset
    failed = pyqtSignal(int, object)  # load id, exception

    def __init__(self, session: TrimSession, load_id: int, path: Path):
        super().__init__()
        self.session = session
        self.load_id = load_id
        self.path = path

    def run(self):
        try:
            asset = self.session.scan_source(self.path)
        except TrimmerError as e:
            self.failed.emit(self.load_id, e)
            return
        self.scanned.emit(self.load_id, asset)


class ExportWorker(QThread):
    """Runs the exporter off the UI thread."""

    progress_updated = pyqtSignal(int, float)  # export id, fraction
    finished_with_result = pyqtSignal(int, object)  # export id, ExportResult

    def __init__(self, exporter, request: ExportRequest):
        super().__init__()
        self.exporter = exporter
        self.request = request

    def run(self):
        try:
            result = self.exporter.export(
                self.request,
                progress_callback=lambda p: self.progress_updated.emit(self.request.export_id, p)
            )
        except (ExportError, OSError) as e:
            log_exception(e, "Export failed")
            result = ExportResult.failed(str(e))
        self.finished_with_result.emit(self.request.export_id, result)


class TimelineWidget(QWidget):
    """Timeline with trim handles and playhead."""

    HANDLE_GRAB = 6  # pixels

    def __init__(self, session: TrimSession, parent: QWidget | None = None):
        super().__init__(parent)
        self.session = session
        self._dragging: str | None = None  # "start", "end" or None
        self.setMinimumHeight(44)
        self.setMouseTracking(True)

    def _x_for(self, fraction: float) -> float:
        return fraction * self.width()

    def _fraction_at(self, x: float) -> float:
        if self.width() <= 0:
            return 0.0
        return max(0.0, min(1.0, x / self.width()))

    def paintEvent(self, event):
        painter = QPainter(self)
        height = self.height()
        painter.fillRect(0, 0, self.width(), height, QColor(120, 120, 120, 80))

        start, end, current = self.session.timeline_fractions()
        accent = QColor(45, 125, 230)

        painter.fillRect(0, 0, int(self._x_for(current)), height, QColor(45, 125, 230, 60))
        range_x = int(self._x_for(start))
        painter.fillRect(range_x, 0, max(0, int(self._x_for(end)) - range_x), height,
                         QColor(45, 125, 230, 120))
        painter.fillRect(range_x, 0, 4, height, accent)
        painter.fillRect(int(self._x_for(end)) - 4, 0, 4, height, accent)
        painter.fillRect(int(self._x_for(current)) - 1, 0, 2, height, QColor(255, 255, 255))
        painter.end()

    def mousePressEvent(self, event):
        if self.session.asset is None:
            return
        x = event.position().x()
        start, end, _ = self.session.timeline_fractions()
        if abs(x - self._x_for(start)) <= self.HANDLE_GRAB:
            self._dragging = "start"
        elif abs(x - self._x_for(end)) <= self.HANDLE_GRAB:
            self._dragging = "end"
        else:
            self._dragging = None
            bounds = (start, end) if self.session.is_preview_mode else None
            self.session.seek_to_timeline_position(self._fraction_at(x), bounds)

    def mouseMoveEvent(self, event):
        if self._dragging is None or self.session.asset is None:
            return
        time_value = self._fraction_at(event.position().x()) * self.session.asset.duration
        if self._dragging == "start":
            self.session.set_start(time_value)
        else:
            self.session.set_end(time_value)

    def mouseReleaseEvent(self, event):
        self._dragging = None


class VideoTrimmerWindow(QMainWindow):
    """Main application window."""

    def __init__(self, settings: TrimmerSettings | None = None):
        super().__init__()
        self.setWindowTitle("Video Trimmer")
        self.resize(900, 700)
        self.setAcceptDrops(True)

        self.settings = settings or TrimmerSettings.default()
        self.file_service = FileService(self.settings)
        self.player = QtPlayer(self)
        self.session = TrimSession(self.player, file_service=self.file_service)
        self._scan_workers: list[ScanWorker] = []
        self._export_workers: list[ExportWorker] = []
        self._shown_error: str | None = None

        self.setup_ui()
        self.setup_menu()
        self.setup_statusbar()
        self.check_ffmpeg_availability()

        self.player.error_occurred.connect(self.session.report_playback_error)
        self.session.add_listener(self.on_session_changed)
        self.on_session_changed(self.session)

    def check_ffmpeg_availability(self):
        """Check if ffmpeg is available and show warning if not."""
        ffmpeg_ok, ffmpeg_msg = check_ffmpeg()
        ffprobe_ok, ffprobe_msg = check_ffprobe()

        if not ffmpeg_ok or not ffprobe_ok:
            msg = "Video tools are not configured:\n\n"
            if not ffmpeg_ok:
                msg += f"• ffmpeg: {ffmpeg_msg}\n"
            if not ffprobe_ok:
                msg += f"• ffprobe: {ffprobe_msg}\n"
            msg += "\nInstall ffmpeg or use a build that bundles it."

            QMessageBox.warning(self, "Missing dependency", msg)
            self.statusBar().showMessage("Warning: ffmpeg unavailable")
        else:
            self.statusBar().showMessage(f"Ready (ffmpeg: {get_ffmpeg_path()})")

    def setup_ui(self):
        """Setup user interface."""
        central_widget = QWidget()
        self.setCentralWidget(central_widget)

        main_layout = QVBoxLayout(central_widget)
        main_layout.setSpacing(10)

        # === File Section ===
        file_group = QGroupBox("Video")
        file_layout = QVBoxLayout()

        open_layout = QHBoxLayout()
        self.file_label = QLabel("Drop a video here or choose a file")
        self.file_label.setStyleSheet("color: #666;")
        open_layout.addWidget(self.file_label)
        open_layout.addStretch()
        self.open_btn = QPushButton("Open...")
        self.open_btn.clicked.connect(self.select_file)
        open_layout.addWidget(self.open_btn)
        file_layout.addLayout(open_layout)

        self.info_label = QLabel("")
        self.info_label.setStyleSheet("color: #666;")
        file_layout.addWidget(self.info_label)

        file_group.setLayout(file_layout)
        main_layout.addWidget(file_group)

        # === Player Section ===
        self.video_widget = QVideoWidget()
        self.video_widget.setMinimumHeight(300)
        self.player.set_video_output(self.video_widget)
        main_layout.addWidget(self.video_widget, stretch=1)

        self.timeline = TimelineWidget(self.session)
        main_layout.addWidget(self.timeline)

        times_layout = QHBoxLayout()
        self.start_label = QLabel("00:00.000")
        self.current_label = QLabel("00:00.000")
        self.end_label = QLabel("00:00.000")
        times_layout.addWidget(self.start_label)
        times_layout.addStretch()
        times_layout.addWidget(self.current_label)
        times_layout.addStretch()
        times_layout.addWidget(self.end_label)
        main_layout.addLayout(times_layout)

        # === Controls ===
        control_layout = QHBoxLayout()
        self.play_btn = QPushButton("Play")
        self.play_btn.clicked.connect(self.session.toggle_play)
        control_layout.addWidget(self.play_btn)

        self.set_start_btn = QPushButton("Set start")
        self.set_start_btn.clicked.connect(self.session.set_start_to_playhead)
        control_layout.addWidget(self.set_start_btn)

        self.set_end_btn = QPushButton("Set end")
        self.set_end_btn.clicked.connect(self.session.set_end_to_playhead)
        control_layout.addWidget(self.set_end_btn)

        self.preview_btn = QPushButton("Preview")
        self.preview_btn.setCheckable(True)
        self.preview_btn.clicked.connect(self.session.toggle_preview)
        control_layout.addWidget(self.preview_btn)

        self.reset_btn = QPushButton("Reset")
        self.reset_btn.clicked.connect(self.session.reset_trim)
        control_layout.addWidget(self.reset_btn)
        main_layout.addLayout(control_layout)

        # === Export Section ===
        export_group = QGroupBox("Export")
        export_layout = QVBoxLayout()

        self.output_label = QLabel("")
        export_layout.addWidget(self.output_label)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, 100)
        export_layout.addWidget(self.progress_bar)

        button_layout = QHBoxLayout()
        self.export_btn = QPushButton("Trim")
        self.export_btn.clicked.connect(self.start_export)
        button_layout.addWidget(self.export_btn)

        self.cancel_btn = QPushButton("Cancel")
        self.cancel_btn.clicked.connect(self.session.cancel_export)
        button_layout.addWidget(self.cancel_btn)

        self.change_btn = QPushButton("Change file")
        self.change_btn.clicked.connect(self.change_file)
        button_layout.addWidget(self.change_btn)
        export_layout.addLayout(button_layout)

        export_group.setLayout(export_layout)
        main_layout.addWidget(export_group)

    def setup_menu(self):
        """Setup menu bar and keyboard shortcuts."""
        menubar = self.menuBar()

        file_menu = menubar.addMenu("File")
        self._add_action(file_menu, "Open...", "Ctrl+O", self.select_file)
        self._add_action(file_menu, "Trim", "Ctrl+E", self.start_export)
        self._add_action(file_menu, "Cancel trim", "Esc", self.session.cancel_export)
        file_menu.addSeparator()
        self._add_action(file_menu, "Quit", "Ctrl+Q", self.close)

        play_menu = menubar.addMenu("Playback")
        self._add_action(play_menu, "Play/Pause", "Space", self.session.toggle_play)
        self._add_action(play_menu, "Back 1/3 s", "Left", self.session.skip_backward)
        self._add_action(play_menu, "Forward 1/3 s", "Right", self.session.skip_forward)
        play_menu.addSeparator()
        self._add_action(play_menu, "Set start", "I", self.session.set_start_to_playhead)
        self._add_action(play_menu, "Set end", "O", self.session.set_end_to_playhead)
        self._add_action(play_menu, "Preview", "P", self.session.toggle_preview)
        self._add_action(play_menu, "Reset trim", "R", self.session.reset_trim)

        help_menu = menubar.addMenu("Help")
        about_action = QAction("About", self)
        about_action.triggered.connect(self.show_about)
        help_menu.addAction(about_action)

    def _add_action(self, menu, title: str, shortcut: str, slot):
        action = QAction(title, self)
        action.setShortcut(QKeySequence(shortcut))
        action.triggered.connect(lambda checked=False: slot())
        menu.addAction(action)
        return action

    def setup_statusbar(self):
        """Setup status bar."""
        self.statusBar().showMessage("Ready")

    # File handling

    def select_file(self):
        """Select a source video."""
        patterns = " ".join(f"*.{ext}" for ext in SUPPORTED_FORMATS)
        file, _ = QFileDialog.getOpenFileName(
            self, "Choose video",
            str(Path.home()),
            f"Video Files ({patterns})"
        )
        if file:
            self.load_video(Path(file))

    def change_file(self):
        self.session.reset_state()
        self.select_file()

    def load_video(self, path: Path):
        """Scan a source on a worker; an older scan still running is superseded."""
        load_id = self.session.begin_load(path)
        worker = ScanWorker(self.session, load_id, path)
        worker.scanned.connect(self.on_scanned)
        worker.failed.connect(self.on_scan_failed)
        worker.finished.connect(lambda: self._scan_workers.remove(worker))
        # Superseded workers keep running until done, their results are discarded
        self._scan_workers.append(worker)
        worker.start()

    def on_scanned(self, load_id: int, asset: VideoAsset):
        self.session.complete_load(load_id, asset)

    def on_scan_failed(self, load_id: int, error: Exception):
        self.session.fail_load(load_id, error)

    def dragEnterEvent(self, event):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()

    def dropEvent(self, event):
        urls = event.mimeData().urls()
        if not urls:
            return
        # Unsupported formats fail the scan and keep the current video
        self.load_video(Path(urls[0].toLocalFile()))

    # Export

    def start_export(self):
        request = self.session.begin_export()
        if request is None:
            return

        worker = ExportWorker(self.session.exporter, request)
        worker.progress_updated.connect(self.on_export_progress)
        worker.finished_with_result.connect(self.on_export_finished)
        worker.finished.connect(lambda: self._export_workers.remove(worker))
        self._export_workers.append(worker)
        worker.start()

    def on_export_progress(self, export_id: int, progress: float):
        self.session.update_progress(progress, export_id)

    def on_export_finished(self, export_id: int, result: ExportResult):
        if self.session.complete_export(result, export_id) and result.is_success:
            self.file_service.reveal_in_folder(result.output_path)

    # Rendering

    def on_session_changed(self, session: TrimSession):
        asset: VideoAsset | None = session.asset
        has_asset = asset is not None

        if session.is_loading:
            self.file_label.setText("Loading...")
        elif has_asset:
            self.file_label.setText(asset.file_name)
            self.info_label.setText(
                f"{asset.formatted_duration}  •  {asset.resolution}  •  "
                f"{asset.frame_rate:.2f} fps  •  {asset.formatted_size}"
            )
        else:
            self.file_label.setText("Drop a video here or choose a file")
            self.info_label.setText("")

        self.start_label.setText(session.start_time_formatted)
        self.current_label.setText(session.current_time_formatted)
        self.end_label.setText(session.end_time_formatted)
        self.play_btn.setText("Pause" if session.is_playing else "Play")
        self.preview_btn.setChecked(session.is_preview_mode)

        for button in (self.set_start_btn, self.set_end_btn, self.reset_btn):
            button.setEnabled(session.can_set_times)
        self.play_btn.setEnabled(session.can_play)
        self.preview_btn.setEnabled(has_asset and not session.is_processing)
        self.export_btn.setEnabled(session.can_start_export)
        self.cancel_btn.setEnabled(session.is_processing)
        self.open_btn.setEnabled(not session.is_processing)
        self.change_btn.setEnabled(has_asset and not session.is_processing)

        self.output_label.setText(session.output_file_name)
        self.progress_bar.setValue(int(session.progress * 100))

        if session.state == SessionState.PREVIEWING:
            self.statusBar().showMessage("Preview: looping the trim range")
        elif session.status_message:
            self.statusBar().showMessage(session.status_message)

        if session.error_message and session.error_message != self._shown_error:
            self._shown_error = session.error_message
            QMessageBox.warning(self, "Video Trimmer", session.error_message)
        elif not session.error_message:
            self._shown_error = None

        self.timeline.update()

    def show_about(self):
        """Show about dialog."""
        QMessageBox.about(
            self, "About Video Trimmer",
            "Video Trimmer v1.0\n\n"
            "Built with PyQt6 + ffmpeg\n\n"
            "- Preview and loop a range of a video\n"
            "- Lossless trim (stream copy, no re-encode)\n"
            "- Never overwrites an existing file"
        )

    def closeEvent(self, event):
        """Handle window close."""
        if self.session.is_processing:
            reply = QMessageBox.question(
                self, "Confirm exit",
                "A trim is running. Quit anyway?",
                QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No
            )

            if reply == QMessageBox.StandardButton.No:
                event.ignore()
                return

            self.session.cancel_export()

        for worker in list(self._export_workers) + list(self._scan_workers):
            worker.wait()
        self.player.cleanup()
        get_logger().info("Window closed")
        event.accept()


def run(settings: TrimmerSettings | None = None, file: Path | None = None) -> int:
    """Create the application and window, returns the exit code."""
    app = QApplication(sys.argv)
    app.setApplicationName("Video Trimmer")
    app.setStyle("Fusion")

    window = VideoTrimmerWindow(settings)
    window.show()
    if file:
        window.load_video(file)

    return app.exec()
