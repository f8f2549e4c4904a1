import asyncio
import subprocess


async def main(value):
    await asyncio.sleep(0)
    return {"async": True, "value": value}


async def hangs(value):
    await asyncio.sleep(3600)


async def spawns_process(value):
    subprocess.run(["true"], check=False)
    return {"spawned": True}


async def spawns_in_executor(value):
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, subprocess.run, ["true"])
    return {"spawned": True}
