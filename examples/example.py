import time
import logging
import pingsweep


def main():
    logging.basicConfig(level=logging.CRITICAL)

    start_time = time.time()

    res = pingsweep.scan('127.0.0.0/28', timeout=1500, workers=8)
    print(f"[{int((time.time() - start_time) * 1000)}ms] {len(res)}\n{[host.ip for host in res]}")


if __name__ == "__main__":
    main()
