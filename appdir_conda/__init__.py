"""appdir-conda — bundle conda environments into relocatable AppDirs."""

__version__ = "0.1.0"
