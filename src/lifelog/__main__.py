from lifelog.collector import run

run()
