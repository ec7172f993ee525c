from .run_lease import RunLease as RunLease
