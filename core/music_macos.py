#core/music_macos.py
import json
import subprocess
from typing import Any, Dict

from .debug import debug_log


# MRNowPlayingRequest is reachable from JXA without the MediaRemote
# entitlement that blocks direct use on macOS 15.4+.
JXA_SCRIPT = r'''
ObjC.import("Foundation");

function run() {
  try {
    const MediaRemote = $.NSBundle.bundleWithPath(
      "/System/Library/PrivateFrameworks/MediaRemote.framework/"
    );
    MediaRemote.load;

    const MRNowPlayingRequest = $.NSClassFromString("MRNowPlayingRequest");
    if (!MRNowPlayingRequest) {
      return JSON.stringify({ error: "MRNowPlayingRequest not available", isPlaying: false, client: null, info: {} });
    }

    const playerPath = MRNowPlayingRequest.localNowPlayingPlayerPath;
    let client = null;
    if (playerPath && playerPath.client) {
      const c = playerPath.client;
      client = {
        bundleIdentifier: c.bundleIdentifier ? ObjC.unwrap(c.bundleIdentifier) : null,
        parentApplicationBundleIdentifier: c.parentApplicationBundleIdentifier
          ? ObjC.unwrap(c.parentApplicationBundleIdentifier)
          : null,
        processIdentifier: c.processIdentifier ? Number(c.processIdentifier) : null,
      };
    }

    const item = MRNowPlayingRequest.localNowPlayingItem;
    const info = {};
    if (item && item.nowPlayingInfo) {
      const dict = item.nowPlayingInfo;
      const keys = dict.keyEnumerator;
      let key;
      while ((key = keys.nextObject) && !key.isNil()) {
        const name = ObjC.unwrap(key);
        const value = dict.objectForKey(key);
        if (!value || value.isNil()) continue;
        if (value.isKindOfClass($.NSDate)) {
          info[name] = value.timeIntervalSince1970 * 1000;
        } else if (value.isKindOfClass($.NSNumber) || value.isKindOfClass($.NSString)) {
          info[name] = ObjC.unwrap(value);
        }
      }
    }

    return JSON.stringify({
      isPlaying: MRNowPlayingRequest.localIsPlaying,
      client: client,
      info: info,
    });
  } catch (e) {
    return JSON.stringify({ error: e.toString(), isPlaying: false, client: null, info: {} });
  }
}
'''


def get_now_playing(timeout: float = 5.0) -> Dict[str, Any]:
    try:
        out = subprocess.check_output(
            ["osascript", "-l", "JavaScript", "-e", JXA_SCRIPT],
            text=True,
            timeout=timeout,
            stderr=subprocess.PIPE,
        ).strip()
    except subprocess.TimeoutExpired:
        return {"error": f"osascript timed out after {timeout:g}s"}
    except (OSError, subprocess.CalledProcessError) as e:
        debug_log(f"osascript failed: {e}")
        return {"error": f"osascript failed: {e}"}

    try:
        data = json.loads(out)
    except json.JSONDecodeError:
        debug_log(f"osascript returned non-JSON output: {out[:200]!r}")
        return {"error": "osascript returned non-JSON output"}

    if not isinstance(data, dict):
        return {"error": "osascript returned an unexpected payload"}
    return data
