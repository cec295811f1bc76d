from streamui.session.runtime_value_store import RuntimeValueStore
from streamui.session.ui_session import UISession

__all__ = ["RuntimeValueStore", "UISession"]
