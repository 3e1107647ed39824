"""azvm - Azure VM management CLI

Starts and deallocates batches of Azure VMs and registers them for
Recovery Services backup, driving each request to completion by polling
the asynchronous operation or the VM's power state.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
