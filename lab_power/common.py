from __future__ import annotations

import configparser
import math
import os
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from PyQt5.QtCore import QObject, QTimer, pyqtSignal, pyqtSlot

from .constants import *
from .errors import *
from .logging_utils import get_logger

logger = get_logger()
